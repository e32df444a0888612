"""Terminal client for a server-driven multiplayer snake game."""
