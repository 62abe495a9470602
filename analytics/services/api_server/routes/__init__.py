"""API route modules. Each module exposes a ``router`` included by main.py."""
