"""Floodgate — auth gateway and settings store for a multi-user torrent UI.

Sits in front of the remote-control application: bootstraps the first
admin, issues and verifies session tokens, gates admin routes, and keeps
each user's UI settings in their own SQLite store.
"""

__version__ = "0.1.0"
