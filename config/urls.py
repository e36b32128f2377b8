from django.contrib import admin
from django.urls import path

# The engine is consumed through blood.services; only the admin site is routed here.
urlpatterns = [
    path('admin/', admin.site.urls),
]
