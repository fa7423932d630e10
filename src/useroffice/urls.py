"""URL configuration for the user office project.

The questionary engine exposes no HTTP surface of its own; transport layers mount their
routes here.
"""

from django.urls import URLPattern, URLResolver

urlpatterns: list[URLPattern | URLResolver] = []
