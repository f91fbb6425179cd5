"""
URL configuration for the personal site backend.

The front end is served separately; only the contact form endpoint
lives here.
"""
from django.urls import path, include

urlpatterns = [
    path('api/contact', include('contact.urls')),  # Public contact form (no auth)
]
