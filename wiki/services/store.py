"""Append-only storage of article revisions."""

from __future__ import annotations

import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Max

from ..errors import Conflict, NotFound
from ..models import Revision
from .changes import ContentSnapshot

logger = logging.getLogger(__name__)


class VersionStore:
    """Per-article, strictly ordered log of :class:`Revision` rows.

    Rows are only ever inserted. ``append`` computes the next version number
    from the current maximum, so callers must hold the article's row lock
    (see :class:`wiki.services.revisions.RevisionEngine`) for the duration of
    the surrounding transaction. The ``(article, version)`` unique constraint
    turns any slip in that discipline into a :class:`Conflict`.
    """

    def __init__(self, using: str = "default"):
        self.using = using

    def _revisions(self):
        return Revision.objects.using(self.using)

    def next_version(self, article_id) -> int:
        current = self._revisions().filter(article_id=article_id).aggregate(
            top=Max("version")
        )["top"]
        return (current or 0) + 1

    def append(
        self,
        article_id,
        snapshot: ContentSnapshot,
        change_kind: str,
        actor,
        comment: str = "",
    ) -> Revision:
        version = self.next_version(article_id)
        try:
            with transaction.atomic(using=self.using):
                revision = self._revisions().create(
                    article_id=article_id,
                    version=version,
                    title=snapshot.title,
                    description=snapshot.description,
                    body=snapshot.body,
                    change_kind=change_kind,
                    comment=comment,
                    author=actor,
                )
        except IntegrityError as exc:
            logger.warning(
                "revision.conflict article=%s version=%s", article_id, version
            )
            raise Conflict(
                f"Version {version} of article {article_id} already exists"
            ) from exc
        return revision

    def latest(self, article_id) -> Optional[Revision]:
        return (
            self._revisions()
            .filter(article_id=article_id)
            .order_by("-version")
            .first()
        )

    def get(self, article_id, version: int) -> Revision:
        revision = (
            self._revisions()
            .select_related("author")
            .filter(article_id=article_id, version=version)
            .first()
        )
        if revision is None:
            raise NotFound(f"Article {article_id} has no version {version}")
        return revision

    def get_by_id(self, article_id, revision_id) -> Revision:
        revision = (
            self._revisions().select_related("author").filter(pk=revision_id).first()
        )
        if revision is None or str(revision.article_id) != str(article_id):
            raise NotFound(f"Revision {revision_id} not found for article {article_id}")
        return revision

    def list(self, article_id) -> list[Revision]:
        return list(
            self._revisions()
            .select_related("author")
            .filter(article_id=article_id)
            .order_by("-version")
        )
