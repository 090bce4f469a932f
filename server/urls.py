"""Root URL configuration.

The drive logic is consumed by an HTTP layer living outside this
project; only the admin is mounted here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
