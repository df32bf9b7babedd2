"""api/ -- FastAPI HTTP adapter over the auth/ and social/ core."""
