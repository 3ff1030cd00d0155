from django.contrib import admin

from materials.models import Material, Summary


class MaterialAdmin(admin.ModelAdmin):
    list_display = ('title', 'user', 'file_type', 'created_at')
    list_filter = ('user', 'file_type')
    search_fields = ('title', 'subject', 'user__username')


class SummaryAdmin(admin.ModelAdmin):
    list_display = ('title', 'user', 'material', 'created_at')
    list_filter = ('user',)
    search_fields = ('title', 'user__username')


admin.site.register(Material, MaterialAdmin)
admin.site.register(Summary, SummaryAdmin)
