"""
Contact URL Configuration
"""
from django.urls import re_path

from .views import ContactFormSubmitView

app_name = 'contact'

urlpatterns = [
    re_path(r'^/?$', ContactFormSubmitView.as_view(), name='submit'),
]
