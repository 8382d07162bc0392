"""
URL configuration for leasehub project.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = 'LeaseHub Administration'
admin.site.site_title = 'LeaseHub Admin'

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('api.urls')),  # API routes
]
