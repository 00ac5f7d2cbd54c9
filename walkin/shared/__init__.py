"""Code shared by the API server and the client sync agent."""
