"""Repository access and history rewriting."""
