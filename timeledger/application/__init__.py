"""
Application layer: use cases and their DTOs.
"""
