"""Services built on the authentication core."""
