"""
CareBook

A healthcare appointment platform made of three FastAPI services:
authentication/user management, appointment booking and notification
delivery, connected over REST and a Redis pub/sub channel.
"""

__version__ = "1.0.0"
