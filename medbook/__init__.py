"""
MedBook API

A FastAPI backend for doctor availability and appointment booking, with
atomic slot reservation, appointment status management and authentication.
"""

__version__ = "1.0.0"
