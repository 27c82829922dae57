from django.urls import path

from . import api

api_urlpatterns = [
    path("articles/", api.ArticleListCreate.as_view(), name="article-list"),
    path("articles/<str:key>/", api.ArticleDetail.as_view(), name="article-detail"),
    path(
        "articles/<str:key>/revisions/",
        api.RevisionHistory.as_view(),
        name="revision-history",
    ),
    path(
        "articles/<str:key>/revisions/<int:version>/",
        api.RevisionDetail.as_view(),
        name="revision-detail",
    ),
    path(
        "articles/<str:key>/revisions/<int:revision_id>/restore/",
        api.RevisionRestore.as_view(),
        name="revision-restore",
    ),
    path("categories/", api.CategoryTree.as_view(), name="category-tree"),
    path("suggest/", api.article_suggest, name="article-suggest"),
]
