"""Administrator authentication via externally issued access tokens."""
