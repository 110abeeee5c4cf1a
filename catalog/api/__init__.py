"""
Catalog REST API Module

This module provides REST API endpoints for:
- Browsing, creating, editing and deleting recipes
- Importing and exporting shared recipe files
- Triggering a catalog refresh and reporting readiness
- Converting units in free text
"""
