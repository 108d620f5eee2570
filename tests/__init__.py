"""
Test suite for the MedBook API.

Contains unit tests for the booking services and integration tests for the HTTP API.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
