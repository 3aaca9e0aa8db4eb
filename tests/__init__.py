"""
Test suite for CareBook.

Contains unit and integration tests for the auth, booking and notification services.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
