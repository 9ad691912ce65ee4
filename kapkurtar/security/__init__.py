"""Security package - authorization rules and rate limiting."""
