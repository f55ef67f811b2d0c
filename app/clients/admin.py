from django.contrib import admin

from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['user', 'first_name', 'last_name', 'created_at']
    search_fields = ['user__email', 'first_name', 'last_name']
