"""Failures injected mid-operation must leave no trace of the operation."""

import pytest
from django.db import OperationalError

from wiki.errors import Unavailable
from wiki.models import Article, Revision
from wiki.services.articles import ArticleRepository
from wiki.services.revisions import RevisionEngine
from wiki.services.store import VersionStore
from tests.factories import make_article, make_user, versions


class FailingStore(VersionStore):
    def __init__(self, fail_on, **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on

    def append(self, article_id, snapshot, change_kind, actor, comment=""):
        if change_kind == self.fail_on:
            raise OperationalError("injected append failure")
        return super().append(article_id, snapshot, change_kind, actor, comment)


class FailingRepository(ArticleRepository):
    def save(self, article):
        raise OperationalError("injected save failure")


@pytest.mark.django_db
def test_create_leaves_nothing_when_append_fails():
    user = make_user()
    engine = RevisionEngine(store=FailingStore(Revision.ChangeKind.CREATE))
    with pytest.raises(Unavailable):
        engine.create(user, title="A", body="b")
    assert not Article.objects.exists()
    assert not Revision.objects.exists()


@pytest.mark.django_db
def test_update_rolls_back_article_when_append_fails():
    user = make_user()
    article = make_article(user, body="b1")
    engine = RevisionEngine(store=FailingStore(Revision.ChangeKind.UPDATE))
    with pytest.raises(Unavailable):
        engine.update(user, article.pk, body="b2", featured=True)
    article.refresh_from_db()
    assert (article.body, article.featured) == ("b1", False)
    assert versions(article) == [1]


@pytest.mark.django_db
def test_restore_rolls_back_checkpoint_when_overwrite_fails():
    user = make_user()
    article = make_article(user, body="b1")
    RevisionEngine().update(user, article.pk, body="b2")
    engine = RevisionEngine(repository=FailingRepository())
    with pytest.raises(Unavailable):
        engine.restore(user, article.pk, 1)
    article.refresh_from_db()
    assert article.body == "b2"
    assert versions(article) == [1, 2]


@pytest.mark.django_db
def test_restore_rolls_back_everything_when_marker_fails():
    user = make_user()
    article = make_article(user, body="b1")
    RevisionEngine().update(user, article.pk, body="b2")
    engine = RevisionEngine(store=FailingStore(Revision.ChangeKind.RESTORE))
    with pytest.raises(Unavailable):
        engine.restore(user, article.pk, 1)
    article.refresh_from_db()
    assert article.body == "b2"
    assert versions(article) == [1, 2]
    # nothing half-done blocks a retry
    RevisionEngine().restore(user, article.pk, 1)
    assert versions(article) == [1, 2, 3, 4]
