"""
Catalog API Views

REST API endpoints for the recipe catalog.

This module provides endpoints for:
- Browsing recipes by category, in metric or imperial units
- Creating, editing and deleting user recipes
- Importing and exporting shared recipe files
- Triggering a catalog refresh and reporting readiness and server health
- Converting free text between metric and imperial units

The API serves a single local user; no authentication is required.
"""

import json
import logging

from asgiref.sync import async_to_sync
from django.http import HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from catalog.api.serializers import ConvertRequestSerializer, RecipeInputSerializer
from catalog.exceptions import (
    CatalogWriteError,
    EntryDecodeError,
    ReadOnlyRecipeError,
    RecipeFileTooLargeError,
)
from catalog.preferences import UserPreferences
from catalog.services.local_store import DeleteOutcome
from catalog.services.recipe_catalog import ALL_CATEGORIES, get_catalog, share_filename
from catalog.utils.measurement import convert, convert_lines

logger = logging.getLogger(__name__)

UNITS_CHOICES = ('metric', 'imperial')


def _entry_payload(entry):
    data = entry.to_dict()
    data['isDeletable'] = entry.is_deletable
    return data


def _preferences_for(request, catalog):
    """User preferences, with the unit system optionally overridden by ?units=."""
    units = request.query_params.get('units')
    if not units:
        return catalog.preferences
    if units not in UNITS_CHOICES:
        return None
    return UserPreferences(
        username=catalog.preferences.username,
        use_metric_units=units == 'metric',
        birthdate=catalog.preferences.birthdate,
    )


# ============================================================
# Recipe Endpoints
# ============================================================

@extend_schema(
    tags=['Recipes'],
    summary='List or create recipes',
    parameters=[
        OpenApiParameter('category', OpenApiTypes.STR, description='Category name or "All"'),
        OpenApiParameter('units', OpenApiTypes.STR, enum=list(UNITS_CHOICES)),
    ],
    request=RecipeInputSerializer,
    responses={
        200: {'description': 'Recipes sorted by name'},
        201: {'description': 'Recipe created'},
        400: {'description': 'Unknown category, units or invalid recipe'},
        500: {'description': 'Recipe could not be written'},
    },
)
@api_view(['GET', 'POST'])
def recipe_list(request):
    """
    GET: list recipes, optionally filtered by category.
    POST: create a new recipe attributed to the configured user.
    """
    catalog = get_catalog()

    if request.method == 'POST':
        serializer = RecipeInputSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            entry = catalog.create(**serializer.validated_data)
        except CatalogWriteError as e:
            logger.error(f"Failed to create recipe: {e}")
            return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(_entry_payload(entry), status=status.HTTP_201_CREATED)

    preferences = _preferences_for(request, catalog)
    if preferences is None:
        return Response(
            {'error': f'units must be one of: {", ".join(UNITS_CHOICES)}'},
            status=status.HTTP_400_BAD_REQUEST
        )

    category = request.query_params.get('category', ALL_CATEGORIES)
    try:
        entries = catalog.recipes_for_category(category)
    except EntryDecodeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'count': len(entries),
        'ready': catalog.ready,
        'recipes': [_entry_payload(catalog.display(entry, preferences)) for entry in entries],
    })


@extend_schema(
    tags=['Recipes'],
    summary='Weekly features and community highlights',
    responses={200: {'description': 'Featured recipes from the remote index'}},
)
@api_view(['GET'])
def featured_recipes(request):
    """Recipes surfaced by the remote index."""
    catalog = get_catalog()
    return Response({
        'weekly_features': [_entry_payload(e) for e in catalog.weekly_features()],
        'community_highlights': [_entry_payload(e) for e in catalog.community_highlights()],
    })


@extend_schema(
    tags=['Recipes'],
    summary='Get, edit or delete a recipe',
    parameters=[OpenApiParameter('units', OpenApiTypes.STR, enum=list(UNITS_CHOICES))],
    request=RecipeInputSerializer,
    responses={
        200: {'description': 'The recipe'},
        204: {'description': 'Recipe deleted'},
        403: {'description': 'Brewpad recipes cannot be edited or deleted'},
        404: {'description': 'Recipe not found'},
    },
)
@api_view(['GET', 'PUT', 'DELETE'])
def recipe_detail(request, recipe_id):
    """
    GET: one recipe.
    PUT: edit a user recipe; the id is kept, a rename replaces the file.
    DELETE: delete a user recipe; built-in and Brewpad recipes are refused.
    """
    catalog = get_catalog()
    entry = catalog.get(recipe_id)
    if entry is None:
        return Response({'error': 'Recipe not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        outcome = catalog.delete(entry)
        if outcome == DeleteOutcome.REFUSED:
            return Response(
                {'error': 'Brewpad recipes cannot be deleted'},
                status=status.HTTP_403_FORBIDDEN
            )
        if outcome == DeleteOutcome.NOT_FOUND:
            return Response({'error': 'Recipe file not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    if request.method == 'PUT':
        serializer = RecipeInputSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            saved = catalog.save(entry.with_changes(**serializer.validated_data), previous=entry)
        except ReadOnlyRecipeError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except CatalogWriteError as e:
            logger.error(f"Failed to save recipe {entry.id}: {e}")
            return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(_entry_payload(saved))

    preferences = _preferences_for(request, catalog)
    if preferences is None:
        return Response(
            {'error': f'units must be one of: {", ".join(UNITS_CHOICES)}'},
            status=status.HTTP_400_BAD_REQUEST
        )
    return Response(_entry_payload(catalog.display(entry, preferences)))


@extend_schema(
    tags=['Sharing'],
    summary='Import a shared recipe',
    description='''
    Import a recipe shared by somebody else, either as an uploaded
    `.brewpadrecipe` file (multipart field `file`) or as a JSON object in
    `recipe`. The copy gets a new id and is attributed "Copied from <creator>".
    ''',
    request={
        'application/json': {
            'type': 'object',
            'properties': {'recipe': {'type': 'object'}},
            'required': ['recipe'],
        },
        'multipart/form-data': {
            'type': 'object',
            'properties': {'file': {'type': 'string', 'format': 'binary'}},
        },
    },
    responses={
        201: {'description': 'Imported copy'},
        400: {'description': 'Invalid recipe payload'},
        413: {'description': 'Recipe file too large'},
    },
)
@api_view(['POST'])
def import_recipe(request):
    """Import a shared recipe file as a local copy."""
    upload = request.FILES.get('file')
    if upload is not None:
        payload = upload.read()
        source = upload.name
    elif isinstance(request.data.get('recipe'), dict):
        payload = json.dumps(request.data['recipe']).encode('utf-8')
        source = 'request'
    else:
        return Response(
            {'error': 'file or recipe is required'},
            status=status.HTTP_400_BAD_REQUEST
        )

    catalog = get_catalog()
    try:
        entry = catalog.import_shared(payload, source=source)
    except RecipeFileTooLargeError as e:
        return Response({'error': str(e)}, status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
    except EntryDecodeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except CatalogWriteError as e:
        logger.error(f"Failed to import recipe from {source}: {e}")
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(_entry_payload(entry), status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['Sharing'],
    summary='Export a recipe for sharing',
    responses={
        (200, 'application/json'): OpenApiTypes.BINARY,
        404: {'description': 'Recipe not found'},
    },
)
@api_view(['GET'])
def export_recipe(request, recipe_id):
    """Download a recipe as a shareable .brewpadrecipe file."""
    catalog = get_catalog()
    entry = catalog.get(recipe_id)
    if entry is None:
        return Response({'error': 'Recipe not found'}, status=status.HTTP_404_NOT_FOUND)

    response = HttpResponse(catalog.export_payload(entry), content_type='application/json')
    response['Content-Disposition'] = f'attachment; filename="{share_filename(entry)}"'
    return response


# ============================================================
# Sync Endpoints
# ============================================================

@extend_schema(
    tags=['Sync'],
    summary='Refresh the catalog from the remote index',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'background': {
                    'type': 'boolean',
                    'default': False,
                    'description': 'Queue the refresh as a Celery task instead of waiting',
                },
            },
        }
    },
    responses={
        200: {
            'description': 'Refresh finished',
            'content': {
                'application/json': {
                    'example': {
                        'outcome': 'partial',
                        'state': 'done',
                        'listing_ok': True,
                        'downloaded': ['mocha.brewpadrecipe'],
                        'pruned': [],
                        'failed': {'latte.brewpadrecipe': 'HTTP 404'},
                    }
                }
            }
        },
        202: {'description': 'Refresh queued'},
    },
)
@api_view(['POST'])
def sync_refresh(request):
    """Run the sync pipeline now, or queue it with {"background": true}."""
    if request.data.get('background'):
        from catalog.tasks import refresh_catalog

        task = refresh_catalog.delay()
        return Response(
            {'status': 'queued', 'task_id': task.id},
            status=status.HTTP_202_ACCEPTED
        )

    catalog = get_catalog()
    report = async_to_sync(catalog.refresh)()
    return Response(report.to_dict())


@extend_schema(
    tags=['Sync'],
    summary='Readiness and remote server health',
    parameters=[
        OpenApiParameter('check_server', OpenApiTypes.BOOL, description='Probe the remote host (default true)'),
    ],
    responses={200: {'description': 'Readiness signals, counters and server status'}},
)
@api_view(['GET'])
def catalog_status(request):
    """Readiness gate signals, catalog counters and remote server health."""
    catalog = get_catalog()
    data = catalog.status()

    if request.query_params.get('check_server', 'true').lower() != 'false':
        health = async_to_sync(catalog.check_server_health)()
        data['server'] = health.to_dict()
    else:
        data['server'] = None

    return Response(data)


# ============================================================
# Conversion Endpoint
# ============================================================

@extend_schema(
    tags=['Conversion'],
    summary='Convert units in free text',
    request=ConvertRequestSerializer,
    responses={
        200: {
            'description': 'Converted text',
            'content': {
                'application/json': {
                    'example': {'text': 'Heat 6.8 fl oz water to 199°F', 'to_imperial': True}
                }
            }
        },
        400: {'description': 'Neither text nor lines given'},
    },
)
@api_view(['POST'])
def convert_units(request):
    """Rewrite metric units to imperial (or back) in text or a list of lines."""
    serializer = ConvertRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    to_imperial = data['to_imperial']
    result = {'to_imperial': to_imperial}
    if 'text' in data:
        result['text'] = convert(data['text'], to_imperial)
    if 'lines' in data:
        result['lines'] = convert_lines(data['lines'], to_imperial)
    return Response(result)
