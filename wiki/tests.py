import logging

import pytest
from django.contrib import admin
from django.db import OperationalError
from django.urls import reverse

from .models import Article, Category, Revision
from .admin import ArticleAdmin
from .rendering import render_body
from .services.articles import ArticleRepository
from .services.revisions import RevisionEngine

JSON = "application/json"


@pytest.fixture
def editor(django_user_model):
    return django_user_model.objects.create_user("editor", password="pw")


@pytest.fixture
def logged_in(client, editor):
    client.force_login(editor)
    return client


def _create(editor, **kwargs):
    data = {"title": "X", "body": "b1"}
    data.update(kwargs)
    return RevisionEngine().create(editor, **data).article


@pytest.mark.django_db
def test_create_returns_article_and_seed_revision(logged_in):
    cat = Category.objects.create(title="Start")
    resp = logged_in.post(
        reverse("wiki-api:article-list"),
        {"title": "Hello", "body": "b1", "category": cat.pk, "tags": ["intro"]},
        content_type=JSON,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["article"]["slug"] == "hello"
    assert data["article"]["tags"] == ["intro"]
    assert data["revision"]["version"] == 1
    assert data["revision"]["change_kind"] == "CREATE"
    assert data["revision"]["author_name"] == "editor"


@pytest.mark.django_db
def test_writes_without_actor_are_unauthenticated(client, editor):
    article = _create(editor)
    resp = client.post(
        reverse("wiki-api:article-list"), {"title": "A", "body": "x"}, content_type=JSON
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthenticated"
    resp = client.patch(
        reverse("wiki-api:article-detail", args=[article.slug]),
        {"body": "b2"},
        content_type=JSON,
    )
    assert resp.status_code == 401
    resp = client.get(reverse("wiki-api:revision-history", args=[article.pk]))
    assert resp.status_code == 401
    assert Revision.objects.count() == 1


@pytest.mark.django_db
def test_create_derives_unicode_slug_from_title(logged_in):
    resp = logged_in.post(
        reverse("wiki-api:article-list"),
        {"title": "Привет мир", "body": "b1"},
        content_type=JSON,
    )
    assert resp.status_code == 201
    slug = resp.json()["article"]["slug"]
    assert slug == "привет-мир"
    resp = logged_in.get(reverse("wiki-api:article-detail", args=[slug]))
    assert resp.status_code == 200
    assert resp.json()["title"] == "Привет мир"


@pytest.mark.django_db
def test_create_with_unsluggable_title_gets_generated_slug(logged_in):
    resp = logged_in.post(
        reverse("wiki-api:article-list"), {"title": "!!!", "body": "b1"}, content_type=JSON
    )
    assert resp.status_code == 201
    assert resp.json()["article"]["slug"].startswith("article-")
    assert Revision.objects.count() == 1


@pytest.mark.django_db
def test_create_with_taken_slug_is_conflict(logged_in, editor):
    _create(editor, slug="taken")
    resp = logged_in.post(
        reverse("wiki-api:article-list"),
        {"title": "Other", "slug": "taken", "body": "x"},
        content_type=JSON,
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


@pytest.mark.django_db
def test_create_with_unknown_category_is_rejected(logged_in):
    resp = logged_in.post(
        reverse("wiki-api:article-list"),
        {"title": "A", "body": "x", "category": 777},
        content_type=JSON,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_reference"


@pytest.mark.django_db
def test_patch_reports_whether_a_revision_was_created(logged_in, editor):
    article = _create(editor)
    url = reverse("wiki-api:article-detail", args=[article.slug])
    resp = logged_in.patch(url, {"title": "X", "body": "b2"}, content_type=JSON)
    assert resp.status_code == 200
    assert resp.json()["revision_created"] is True

    resp = logged_in.patch(
        reverse("wiki-api:article-detail", args=[article.pk]),
        {"title": "X", "body": "b2", "featured": True},
        content_type=JSON,
    )
    assert resp.json()["revision_created"] is False
    assert resp.json()["featured"] is True
    assert Revision.objects.filter(article=article).count() == 2


@pytest.mark.django_db
def test_patch_missing_article_is_404(logged_in):
    resp = logged_in.patch(
        reverse("wiki-api:article-detail", args=["ghost"]), {"body": "x"}, content_type=JSON
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


@pytest.mark.django_db
def test_history_restore_and_revision_detail(logged_in, editor):
    article = _create(editor)
    engine = RevisionEngine()
    engine.update(editor, article.pk, body="b2")
    first = Revision.objects.get(article=article, version=1)

    resp = logged_in.post(reverse("wiki-api:revision-restore", args=[article.pk, first.pk]))
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["article"]["body"] == "b1"
    assert (data["revision"]["version"], data["revision"]["change_kind"]) == (4, "RESTORE")

    history = logged_in.get(reverse("wiki-api:revision-history", args=[article.pk])).json()
    assert [r["version"] for r in history] == [4, 3, 2, 1]
    assert [r["change_kind"] for r in history] == ["RESTORE", "UPDATE", "UPDATE", "CREATE"]
    assert all(r["author_name"] == "editor" for r in history)

    detail = logged_in.get(reverse("wiki-api:revision-detail", args=[article.pk, 3]))
    assert detail.json()["body"] == "b2"
    missing = logged_in.get(reverse("wiki-api:revision-detail", args=[article.pk, 9]))
    assert missing.status_code == 404


@pytest.mark.django_db
def test_restore_rejects_revision_of_another_article(logged_in, editor):
    a = _create(editor, title="A")
    b = _create(editor, title="B")
    foreign = Revision.objects.get(article=b)
    resp = logged_in.post(reverse("wiki-api:revision-restore", args=[a.pk, foreign.pk]))
    assert resp.status_code == 404
    assert Revision.objects.filter(article=a).count() == 1


@pytest.mark.django_db
def test_detail_counts_views_and_renders_body(client, editor):
    article = _create(editor, body="See [[Other page|the other]]")
    url = reverse("wiki-api:article-detail", args=[article.slug])
    client.get(url)
    data = client.get(url).json()
    assert data["views"] == 2
    assert 'href="/wiki/other-page/"' in data["body_html"]
    assert Revision.objects.filter(article=article).count() == 1


@pytest.mark.django_db
def test_list_filters(client, editor):
    cat = Category.objects.create(title="Guides")
    _create(editor, title="Draft")
    _create(editor, title="Guide", category=cat, published=True, featured=True)
    url = reverse("wiki-api:article-list")

    data = client.get(url).json()
    assert [a["title"] for a in data] == ["Guide", "Draft"]
    assert data[0]["revision_count"] == 1
    assert [a["title"] for a in client.get(url, {"published": "false"}).json()] == ["Draft"]
    assert [a["title"] for a in client.get(url, {"category": "guides"}).json()] == ["Guide"]
    assert [a["title"] for a in client.get(url, {"featured": "true"}).json()] == ["Guide"]
    assert len(client.get(url, {"limit": "1"}).json()) == 1
    assert [a["title"] for a in client.get(url, {"q": "dra"}).json()] == ["Draft"]


@pytest.mark.django_db
def test_delete_is_not_versioned(logged_in, editor):
    article = _create(editor)
    resp = logged_in.delete(reverse("wiki-api:article-detail", args=[article.slug]))
    assert resp.status_code == 200
    assert not Article.objects.exists()
    assert not Revision.objects.exists()


@pytest.mark.django_db
def test_detail_and_delete_report_storage_failure(logged_in, editor, monkeypatch):
    article = _create(editor)

    def fail(self, article_id):
        raise OperationalError("database is locked")

    monkeypatch.setattr(ArticleRepository, "increment_views", fail)
    monkeypatch.setattr(ArticleRepository, "delete", fail)
    url = reverse("wiki-api:article-detail", args=[article.slug])
    for resp in (logged_in.get(url), logged_in.delete(url)):
        assert resp.status_code == 503
        assert resp.json()["error"] == "unavailable"
    assert Article.objects.filter(pk=article.pk).exists()


@pytest.mark.django_db
def test_error_log_names_the_view(logged_in, editor, caplog, monkeypatch):
    _create(editor, slug="taken")
    monkeypatch.setattr(logging.getLogger("wiki"), "propagate", True)
    with caplog.at_level(logging.WARNING, logger="wiki.api"):
        resp = logged_in.post(
            reverse("wiki-api:article-list"),
            {"title": "Other", "slug": "taken", "body": "x"},
            content_type=JSON,
        )
    assert resp.status_code == 409
    assert "view=ArticleListCreate" in caplog.text
    assert "object at 0x" not in caplog.text


@pytest.mark.django_db
def test_admin_publish_sets_published_at_once(rf, admin_user, editor):
    article = _create(editor)
    assert article.published_at is None
    model_admin = ArticleAdmin(Article, admin.site)
    request = rf.post("/admin/wiki/article/")
    request.user = admin_user

    article.published = True
    model_admin.save_model(request, article, None, True)
    article.refresh_from_db()
    first = article.published_at
    assert first is not None

    article.published = False
    model_admin.save_model(request, article, None, True)
    article.published = True
    model_admin.save_model(request, article, None, True)
    article.refresh_from_db()
    assert article.published_at == first
    assert Revision.objects.filter(article=article).count() == 1


@pytest.mark.django_db
def test_category_tree(client):
    root = Category.objects.create(title="Start", order=1)
    Category.objects.create(title="How to", parent=root)
    data = client.get(reverse("wiki-api:category-tree")).json()
    assert [c["slug"] for c in data] == ["start"]
    assert [c["slug"] for c in data[0]["children"]] == ["how-to"]


@pytest.mark.django_db
def test_article_suggest_endpoint(client, editor):
    _create(editor, title="Alpha", published=True)
    _create(editor, title="Alps draft")
    resp = client.get(reverse("wiki-api:article-suggest"), {"q": "Al"})
    assert resp.status_code == 200
    assert [item["title"] for item in resp.json()] == ["Alpha"]


def test_render_body_sanitizes_markup():
    html = render_body("# Title\n\n<script>alert(1)</script>\n\nSee [[Page]]")
    assert "<h1>Title</h1>" in html
    assert "<script>" not in html
    assert 'href="/wiki/page/"' in html
