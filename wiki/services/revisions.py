"""Create, update and restore articles together with their revision log.

Every mutation of an article's content goes through :class:`RevisionEngine`.
Each public method is one transaction: the article row and the revisions it
appends either all commit or none do. Update and restore take the article's
row lock before the next version number is computed, so concurrent writers on
one article serialize while different articles never contend.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from django.utils import timezone
from django.utils.text import slugify

from .. import conf
from ..errors import Unauthenticated
from ..models import Article, Revision
from .articles import ArticleRepository
from .changes import ContentSnapshot, content_changed
from .store import VersionStore
from .tx import storage_errors, unit_of_work

logger = logging.getLogger(__name__)

UNSET = object()


@dataclass
class EditResult:
    article: Article
    revision: Optional[Revision] = None
    # only set by restore: the autosave of the overwritten content
    checkpoint: Optional[Revision] = None

    @property
    def revision_created(self) -> bool:
        return self.revision is not None


def _require_actor(actor) -> None:
    if (
        actor is None
        or not getattr(actor, "is_authenticated", False)
        or getattr(actor, "pk", None) is None
    ):
        raise Unauthenticated()


def _pick(value, current):
    return current if value is UNSET else value


class RevisionEngine:
    def __init__(
        self,
        store: Optional[VersionStore] = None,
        repository: Optional[ArticleRepository] = None,
        using: str = "default",
    ):
        self.using = using
        self.store = store or VersionStore(using=using)
        self.repository = repository or ArticleRepository(using=using)

    def create(
        self,
        actor,
        *,
        title: str,
        body: str = "",
        slug: str = "",
        description: Optional[str] = None,
        category=None,
        published: bool = False,
        featured: bool = False,
        tags: Optional[Iterable[str]] = None,
    ) -> EditResult:
        _require_actor(actor)
        slug = slug or slugify(title, allow_unicode=True)
        if not slug:
            slug = f"article-{uuid.uuid4().hex[:8]}"
        with unit_of_work(self.using):
            article = self.repository.insert(
                title=title,
                slug=slug,
                description=description,
                body=body,
                category=self.repository.check_category(category),
                author=actor,
                published=bool(published),
                featured=bool(featured),
                published_at=timezone.now() if published else None,
            )
            if tags:
                self.repository.set_tags(article, tags)
            revision = self.store.append(
                article.pk,
                ContentSnapshot.of(article),
                Revision.ChangeKind.CREATE,
                actor,
                conf.INITIAL_COMMENT,
            )
        logger.info(
            "article.create article=%s slug=%s version=%s user=%s",
            article.pk,
            article.slug,
            revision.version,
            actor.pk,
        )
        return EditResult(article=article, revision=revision)

    def update(
        self,
        actor,
        article,
        *,
        title=UNSET,
        description=UNSET,
        body=UNSET,
        slug=UNSET,
        category=UNSET,
        published=UNSET,
        featured=UNSET,
        tags: Optional[Iterable[str]] = None,
    ) -> EditResult:
        """Apply an edit. ``article`` is an Article, an id or a slug.

        Metadata (slug, category, flags, tags) always applies. A revision is
        appended only when title, description or body actually changed.
        Omitted arguments keep their current value.
        """
        _require_actor(actor)
        revision = None
        with unit_of_work(self.using):
            pk = self.repository.resolve(article)
            current = self.repository.get_for_update(pk)
            before = ContentSnapshot.of(current)
            proposed = ContentSnapshot(
                title=_pick(title, before.title),
                description=_pick(description, before.description),
                body=_pick(body, before.body),
            )
            changed = content_changed(before, proposed)
            proposed.apply_to(current)

            if slug not in (UNSET, None, ""):
                current.slug = slug
            if category is not UNSET:
                current.category = self.repository.check_category(category)
            if featured is not UNSET:
                current.featured = bool(featured)
            if published is not UNSET:
                current.published = bool(published)
                if current.published and current.published_at is None:
                    current.published_at = timezone.now()
            self.repository.save(current)
            if tags is not None:
                self.repository.set_tags(current, tags)

            if changed:
                version = self.store.next_version(pk)
                revision = self.store.append(
                    pk,
                    proposed,
                    Revision.ChangeKind.UPDATE,
                    actor,
                    conf.UPDATE_COMMENT.format(version=version),
                )
        logger.info(
            "article.update article=%s version=%s user=%s",
            current.pk,
            revision.version if revision else None,
            actor.pk,
        )
        return EditResult(article=current, revision=revision)

    def restore(self, actor, article, version: int) -> EditResult:
        """Bring back the content of ``version``.

        The content being replaced is saved first as an UPDATE checkpoint,
        then the restored content is logged as a RESTORE revision.
        """
        _require_actor(actor)
        with unit_of_work(self.using):
            pk = self.repository.resolve(article)
            current = self.repository.get_for_update(pk)
            target = self.store.get(pk, version)
            checkpoint = self.store.append(
                pk,
                ContentSnapshot.of(current),
                Revision.ChangeKind.UPDATE,
                actor,
                conf.CHECKPOINT_COMMENT.format(version=target.version),
            )
            snapshot = ContentSnapshot.of(target)
            snapshot.apply_to(current)
            self.repository.save(current)
            revision = self.store.append(
                pk,
                snapshot,
                Revision.ChangeKind.RESTORE,
                actor,
                conf.RESTORE_COMMENT.format(version=target.version),
            )
        logger.info(
            "article.restore article=%s from=%s checkpoint=%s version=%s user=%s",
            pk,
            target.version,
            checkpoint.version,
            revision.version,
            actor.pk,
        )
        return EditResult(article=current, revision=revision, checkpoint=checkpoint)

    @storage_errors
    def history(self, article) -> list[Revision]:
        return self.store.list(self.repository.resolve(article))

    @storage_errors
    def revision(self, article, version: int) -> Revision:
        return self.store.get(self.repository.resolve(article), version)
