"""Play-session client: validation, score streaming and result submission."""
