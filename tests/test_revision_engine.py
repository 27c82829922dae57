import pytest
from django.contrib.auth.models import AnonymousUser

from wiki.errors import Conflict, InvalidReference, NotFound, Unauthenticated
from wiki.models import Article, Revision
from wiki.services.revisions import RevisionEngine
from tests.factories import make_article, make_category, make_user, versions

CREATE = Revision.ChangeKind.CREATE
UPDATE = Revision.ChangeKind.UPDATE
RESTORE = Revision.ChangeKind.RESTORE


@pytest.fixture
def engine():
    return RevisionEngine()


@pytest.fixture
def user(db):
    return make_user()


@pytest.mark.django_db
def test_create_seeds_first_revision(engine, user):
    cat = make_category()
    result = engine.create(
        user,
        title="Getting started",
        description="intro",
        body="<p>hi</p>",
        category=cat.pk,
        published=True,
        tags=["guide", "basics"],
    )
    article, rev = result.article, result.revision
    assert article.slug == "getting-started"
    assert article.category == cat
    assert article.author == user
    assert article.published_at is not None
    assert sorted(article.tags.values_list("slug", flat=True)) == ["basics", "guide"]
    assert (rev.version, rev.change_kind, rev.comment) == (1, CREATE, "initial version")
    assert (rev.title, rev.description, rev.body) == ("Getting started", "intro", "<p>hi</p>")
    assert rev.author == user


@pytest.mark.django_db
def test_create_rejects_taken_slug(engine, user):
    make_article(user, title="A", slug="same")
    with pytest.raises(Conflict):
        engine.create(user, title="B", slug="same", body="x")
    assert Article.objects.count() == 1
    assert Revision.objects.count() == 1


@pytest.mark.django_db
def test_create_rejects_unknown_category(engine, user):
    with pytest.raises(InvalidReference):
        engine.create(user, title="A", body="x", category=9999)
    assert not Article.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize("actor", [None, AnonymousUser()])
def test_mutations_require_an_actor(engine, user, actor):
    article = make_article(user)
    with pytest.raises(Unauthenticated):
        engine.create(actor, title="B", body="x")
    with pytest.raises(Unauthenticated):
        engine.update(actor, article.pk, body="b2")
    with pytest.raises(Unauthenticated):
        engine.restore(actor, article.pk, 1)
    assert versions(article) == [1]


@pytest.mark.django_db
def test_update_appends_revision_for_content_change(engine, user):
    article = make_article(user)
    result = engine.update(user, article.pk, title="X", body="b2")
    assert result.revision_created
    rev = result.revision
    assert (rev.version, rev.change_kind, rev.comment) == (2, UPDATE, "version update 2")
    assert rev.body == "b2"
    article.refresh_from_db()
    assert article.body == "b2"


@pytest.mark.django_db
def test_metadata_only_update_applies_without_revision(engine, user):
    article = make_article(user)
    cat = make_category()
    result = engine.update(
        user,
        article.pk,
        title="X",
        body="b1",
        slug="renamed",
        category=cat.pk,
        featured=True,
        published=True,
        tags=["news"],
    )
    assert not result.revision_created
    article.refresh_from_db()
    assert (article.slug, article.category, article.featured, article.published) == (
        "renamed",
        cat,
        True,
        True,
    )
    assert list(article.tags.values_list("slug", flat=True)) == ["news"]
    assert versions(article) == [1]


@pytest.mark.django_db
def test_repeated_identical_update_appends_once(engine, user):
    article = make_article(user)
    assert engine.update(user, article.pk, body="b2").revision_created
    assert not engine.update(user, article.pk, body="b2").revision_created
    assert versions(article) == [1, 2]


@pytest.mark.django_db
def test_whitespace_edit_is_versioned(engine, user):
    article = make_article(user, body="<p>a</p>")
    assert engine.update(user, article.pk, body="<p>a</p> ").revision_created


@pytest.mark.django_db
def test_update_by_slug_and_missing_article(engine, user):
    article = make_article(user, title="Hello")
    result = engine.update(user, "hello", body="new")
    assert result.article.pk == article.pk
    with pytest.raises(NotFound):
        engine.update(user, "nope", body="x")
    with pytest.raises(NotFound):
        engine.update(user, 12345, body="x")


@pytest.mark.django_db
def test_update_slug_collision_rolls_back(engine, user):
    make_article(user, title="One")
    two = make_article(user, title="Two")
    with pytest.raises(Conflict):
        engine.update(user, two.pk, body="changed", slug="one")
    two.refresh_from_db()
    assert (two.slug, two.body) == ("two", "b1")
    assert versions(two) == [1]


@pytest.mark.django_db
def test_update_unknown_category_is_invalid_reference(engine, user):
    article = make_article(user)
    with pytest.raises(InvalidReference):
        engine.update(user, article.pk, body="b2", category=424242)
    assert versions(article) == [1]


@pytest.mark.django_db
def test_published_at_survives_unpublish_cycle(engine, user):
    article = make_article(user)
    assert article.published_at is None
    first = engine.update(user, article.pk, published=True).article.published_at
    assert first is not None
    engine.update(user, article.pk, published=False)
    again = engine.update(user, article.pk, published=True).article
    assert again.published_at == first


@pytest.mark.django_db
def test_example_scenario(engine, user):
    article = make_article(user, title="X", body="b1")
    engine.update(user, article.pk, title="X", body="b2")
    assert not engine.update(user, article.pk, title="X", body="b2").revision_created
    assert engine.store.latest(article.pk).version == 2

    result = engine.restore(user, article.pk, 1)

    assert (result.checkpoint.version, result.checkpoint.change_kind) == (3, UPDATE)
    assert result.checkpoint.body == "b2"
    assert (result.revision.version, result.revision.change_kind) == (4, RESTORE)
    assert result.revision.body == "b1"
    assert result.revision.comment == "restored from version 1"
    article.refresh_from_db()
    assert article.body == "b1"
    assert [r.version for r in engine.history(article.pk)] == [4, 3, 2, 1]


@pytest.mark.django_db
def test_restore_preserves_history_and_content(engine, user):
    article = make_article(user, title="T1", description="d1", body="one")
    engine.update(user, article.pk, title="T2", description=None, body="two")
    engine.update(user, article.pk, body="three  ")
    before = [(r.pk, r.version, r.body) for r in engine.history(article.pk)]

    engine.restore(user, article.pk, 1)

    after = engine.history(article.pk)
    assert [(r.pk, r.version, r.body) for r in after[2:]] == before
    checkpoint, restored = after[1], after[0]
    assert (checkpoint.title, checkpoint.description, checkpoint.body) == ("T2", None, "three  ")
    assert checkpoint.comment == "autosave before restoring version 1"
    article.refresh_from_db()
    assert (article.title, article.description, article.body) == ("T1", "d1", "one")
    assert (restored.title, restored.description, restored.body) == ("T1", "d1", "one")


@pytest.mark.django_db
def test_back_to_back_restores_keep_every_state(engine, user):
    article = make_article(user, body="b1")
    engine.update(user, article.pk, body="b2")
    engine.restore(user, article.pk, 1)
    engine.restore(user, article.pk, 1)
    assert versions(article) == [1, 2, 3, 4, 5, 6]
    article.refresh_from_db()
    assert article.body == "b1"


@pytest.mark.django_db
def test_restore_unknown_version_or_article(engine, user):
    article = make_article(user)
    other = make_article(user, title="Other")
    engine.update(user, other.pk, body="o2")
    with pytest.raises(NotFound):
        engine.restore(user, article.pk, 2)
    with pytest.raises(NotFound):
        engine.restore(user, 98765, 1)
    assert versions(article) == [1]


@pytest.mark.django_db
def test_history_lists_author_names(engine, user):
    user.first_name, user.last_name = "Ada", "Lovelace"
    user.save()
    other = make_user("bob")
    article = make_article(user)
    engine.update(other, article.pk, body="b2")
    names = [r.author_name for r in engine.history(article.slug)]
    assert names == ["bob", "Ada Lovelace"]
    assert engine.revision(article.pk, 2).author == other
