"""Teams assignments API client, roster cache and token refresh."""
