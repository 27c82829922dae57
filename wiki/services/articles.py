from __future__ import annotations

from typing import Iterable, Optional

from django.db import IntegrityError, transaction
from django.db.models import F

from ..errors import Conflict, InvalidReference, NotFound
from ..models import Article, Category, Tag
from .tx import locked


# views is bumped concurrently by readers and never written back from a stale row
SAVED_FIELDS = [
    "title",
    "slug",
    "description",
    "body",
    "category",
    "published",
    "featured",
    "published_at",
    "updated_at",
]


class ArticleRepository:
    """Owns the mutable current row of each article."""

    def __init__(self, using: str = "default"):
        self.using = using

    def _articles(self):
        return Article.objects.using(self.using)

    def resolve(self, key) -> int:
        """Return the primary key for an article id or slug."""
        if isinstance(key, Article):
            return key.pk
        if isinstance(key, int) or str(key).isdecimal():
            pk = int(key)
            if self._articles().filter(pk=pk).exists():
                return pk
        pk = self._articles().filter(slug=str(key)).values_list("pk", flat=True).first()
        if pk is None:
            raise NotFound(f"Article {key!r} not found")
        return pk

    def get(self, article_id) -> Article:
        article = (
            self._articles()
            .select_related("category", "author")
            .filter(pk=article_id)
            .first()
        )
        if article is None:
            raise NotFound(f"Article {article_id} not found")
        return article

    def get_for_update(self, article_id) -> Article:
        article = locked(self._articles().filter(pk=article_id)).first()
        if article is None:
            raise NotFound(f"Article {article_id} not found")
        return article

    def ensure_slug_free(self, slug: str, exclude_pk=None) -> None:
        qs = self._articles().filter(slug=slug)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if qs.exists():
            raise Conflict(f"Slug {slug!r} is already in use")

    def check_category(self, category) -> Optional[Category]:
        if category in (None, ""):
            return None
        pk = getattr(category, "pk", category)
        found = Category.objects.using(self.using).filter(pk=pk).first()
        if found is None:
            raise InvalidReference(f"Category {pk!r} does not exist")
        return found

    def insert(self, **fields) -> Article:
        self.ensure_slug_free(fields["slug"])
        try:
            with transaction.atomic(using=self.using):
                return self._articles().create(**fields)
        except IntegrityError as exc:
            raise Conflict(f"Slug {fields['slug']!r} is already in use") from exc

    def save(self, article: Article) -> Article:
        self.ensure_slug_free(article.slug, exclude_pk=article.pk)
        try:
            with transaction.atomic(using=self.using):
                article.save(using=self.using, update_fields=SAVED_FIELDS)
        except IntegrityError as exc:
            raise Conflict(f"Slug {article.slug!r} is already in use") from exc
        return article

    def set_tags(self, article: Article, slugs: Iterable[str]) -> None:
        tags = []
        for slug in slugs:
            tag, _ = Tag.objects.using(self.using).get_or_create(
                slug=slug, defaults={"name": slug[:1].upper() + slug[1:]}
            )
            tags.append(tag)
        article.tags.set(tags)

    def increment_views(self, article_id) -> None:
        self._articles().filter(pk=article_id).update(views=F("views") + 1)

    def delete(self, article_id) -> None:
        deleted, _ = self._articles().filter(pk=article_id).delete()
        if not deleted:
            raise NotFound(f"Article {article_id} not found")
