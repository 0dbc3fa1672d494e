"""FreelanceHub API: accounts, authentication and profiles."""

__version__ = "0.1.0"
