"""
Catalog API URL Configuration

URL patterns for the catalog REST API.

Endpoints:
- GET  /api/v1/recipes/                   - List recipes (?category=, ?units=)
- POST /api/v1/recipes/                   - Create a recipe
- GET  /api/v1/recipes/featured/          - Weekly features and community highlights
- POST /api/v1/recipes/import/            - Import a shared recipe
- GET  /api/v1/recipes/<id>/              - Get a recipe
- PUT  /api/v1/recipes/<id>/              - Edit a recipe
- DELETE /api/v1/recipes/<id>/            - Delete a recipe
- GET  /api/v1/recipes/<id>/export/       - Export a recipe for sharing
- POST /api/v1/sync/refresh/              - Refresh from the remote index
- GET  /api/v1/status/                    - Readiness and server health
- POST /api/v1/convert/                   - Convert units in free text
"""

from django.urls import path

from catalog.api.views import (
    catalog_status,
    convert_units,
    export_recipe,
    featured_recipes,
    import_recipe,
    recipe_detail,
    recipe_list,
    sync_refresh,
)

app_name = 'catalog_api'

urlpatterns = [
    # Recipe endpoints
    path('recipes/', recipe_list, name='recipe_list'),
    path('recipes/featured/', featured_recipes, name='featured_recipes'),
    path('recipes/import/', import_recipe, name='import_recipe'),
    path('recipes/<str:recipe_id>/', recipe_detail, name='recipe_detail'),
    path('recipes/<str:recipe_id>/export/', export_recipe, name='export_recipe'),

    # Sync endpoints
    path('sync/refresh/', sync_refresh, name='sync_refresh'),
    path('status/', catalog_status, name='catalog_status'),

    # Conversion endpoint
    path('convert/', convert_units, name='convert_units'),
]
