"""Services package - business operations over the storage layer."""
