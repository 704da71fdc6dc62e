"""
Authentication module for the clinic patient records system.

This module provides authentication and authorization functionality including:
- Registration (first account becomes admin)
- Login with failed-attempt lockout
- Access/refresh token issuance and silent renewal
- Server-side sessions kept in a cache and revoked on logout
- Role-based access control
"""
