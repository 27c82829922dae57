from django.contrib import admin
from django.utils import timezone

from .models import Article, Category, Revision, Tag


class RevisionInline(admin.TabularInline):
    model = Revision
    extra = 0
    fields = ("version", "change_kind", "comment", "author", "created_at")
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "parent", "order")
    prepopulated_fields = {"slug": ("title",)}


@admin.register(Article)
class ArticleAdmin(admin.ModelAdmin):
    """Content fields are read-only here: edits must go through the API so they are versioned."""

    list_display = ("title", "slug", "category", "published", "featured", "views")
    list_filter = ("published", "featured", "category")
    search_fields = ("title", "slug")
    readonly_fields = ("title", "description", "body", "published_at", "views")
    inlines = [RevisionInline]

    def has_add_permission(self, request):
        return False

    def save_model(self, request, obj, form, change):
        if obj.published and obj.published_at is None:
            obj.published_at = timezone.now()
        super().save_model(request, obj, form, change)


@admin.register(Revision)
class RevisionAdmin(admin.ModelAdmin):
    list_display = ("article", "version", "change_kind", "author", "created_at")
    list_filter = ("change_kind",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(Tag)
