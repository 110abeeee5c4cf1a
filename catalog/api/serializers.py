"""
Request serializers for the catalog API.

Responses use the recipe JSON schema directly (CatalogEntry.to_dict()), so
only incoming payloads are described here.
"""

from rest_framework import serializers

from catalog.entries import Category
from catalog.exceptions import EntryDecodeError


class RecipeInputSerializer(serializers.Serializer):
    """Fields a user may set when creating or editing a recipe."""

    name = serializers.CharField(max_length=200)
    category = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    ingredients = serializers.ListField(child=serializers.CharField(allow_blank=True))
    preparations = serializers.ListField(child=serializers.CharField(allow_blank=True))

    def validate_category(self, value):
        try:
            return Category.parse(value)
        except EntryDecodeError as e:
            raise serializers.ValidationError(str(e))


class ConvertRequestSerializer(serializers.Serializer):
    """Text (or lines) to rewrite between metric and imperial units."""

    text = serializers.CharField(required=False, allow_blank=True)
    lines = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False
    )
    to_imperial = serializers.BooleanField(default=True)

    def validate(self, attrs):
        if "text" not in attrs and "lines" not in attrs:
            raise serializers.ValidationError("Provide text or lines")
        return attrs
