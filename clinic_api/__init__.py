"""
Clinic patient records API.
"""
