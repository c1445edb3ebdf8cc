"""Login endpoint and the dependencies that verify access tokens."""
