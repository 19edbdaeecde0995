"""LightBnB property-rental data-access layer."""
