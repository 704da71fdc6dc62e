"""
Patient record CRUD, available to every authenticated user.
"""
