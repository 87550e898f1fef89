"""Root URL configuration for sitelinker_site."""

from django.urls import include, path

urlpatterns = [
    path('', include('sitelinker.urls')),
]
