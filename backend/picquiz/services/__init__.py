"""
Outbound services.
"""
