"""
Catalog Django application.

This app keeps the local recipe catalog in step with the remote recipe
index and rewrites recipe text between metric and imperial units.
"""
