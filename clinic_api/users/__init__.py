"""
User profile and administration endpoints built on the auth module.
"""
