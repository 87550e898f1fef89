"""URL configuration for the sitelinker app.

Entity pages live under their full slug path, e.g.
``/crm-software/crm-for-startups/``.
"""

from django.urls import path

from . import views

app_name = 'sitelinker'

urlpatterns = [
    path('<path:path>/', views.entity_page, name='entity_page'),
]
