"""Quote server and client guarded by an Argon2id proof-of-work challenge."""

__version__ = "0.1.0"