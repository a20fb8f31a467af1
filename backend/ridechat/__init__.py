"""Ride chat: real-time room messaging client for ride-sharing group chats."""

__version__ = "0.1.0"
