from django.conf import settings
from django.db import models
from django.utils.text import slugify


class Tag(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(unique=True, blank=True, allow_unicode=True)

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name, allow_unicode=True)
        super().save(*args, **kwargs)

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return self.name


class Category(models.Model):
    title = models.CharField(max_length=100)
    slug = models.SlugField(unique=True, blank=True, allow_unicode=True)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=50, blank=True)
    order = models.PositiveIntegerField(default=0)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        related_name="children",
        on_delete=models.CASCADE,
    )

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.title, allow_unicode=True)
        super().save(*args, **kwargs)

    class Meta:
        ordering = ["order", "title"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return self.title


class Article(models.Model):
    """Current state of a wiki document.

    Title, description and body are content fields: they only change through
    :class:`wiki.services.revisions.RevisionEngine`, which records every change
    as a :class:`Revision`. Everything else is metadata and is not versioned.
    """

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True, allow_unicode=True)
    description = models.TextField(null=True, blank=True)
    body = models.TextField(blank=True)
    category = models.ForeignKey(
        Category,
        null=True,
        blank=True,
        related_name="articles",
        on_delete=models.SET_NULL,
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        related_name="wiki_articles",
        on_delete=models.SET_NULL,
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name="articles")
    published = models.BooleanField(default=False)
    featured = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    views = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-featured", "-published_at", "-id"]

    def content_html(self) -> str:
        from .rendering import render_body

        return render_body(self.body)

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return self.title


class Revision(models.Model):
    class ChangeKind(models.TextChoices):
        CREATE = "CREATE", "Create"
        UPDATE = "UPDATE", "Update"
        RESTORE = "RESTORE", "Restore"
        # reserved, never written by the revision engine
        DELETE = "DELETE", "Delete"

    article = models.ForeignKey(
        Article, related_name="revisions", on_delete=models.CASCADE
    )
    version = models.PositiveIntegerField()
    title = models.CharField(max_length=200)
    description = models.TextField(null=True, blank=True)
    body = models.TextField(blank=True)
    change_kind = models.CharField(
        max_length=10, choices=ChangeKind.choices, default=ChangeKind.UPDATE
    )
    comment = models.CharField(max_length=255, blank=True)
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="wiki_revisions",
        on_delete=models.PROTECT,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-version"]
        constraints = [
            models.UniqueConstraint(
                fields=["article", "version"], name="uniq_revision_article_version"
            ),
        ]

    @property
    def author_name(self) -> str:
        user = self.author
        return user.get_full_name() or user.get_username()

    def __str__(self) -> str:  # pragma: no cover - simple repr
        return f"{self.article} v{self.version}"
