"""REST API for wiki articles and their revision history."""

from __future__ import annotations

import logging

from django.db.models import Count
from django.http import JsonResponse
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import exception_handler as drf_exception_handler

from . import conf
from .errors import RevisionError, Unauthenticated
from .models import Article, Category
from .serializers import (
    ArticleDetailSerializer,
    ArticleListSerializer,
    ArticleWriteSerializer,
    CategoryTreeSerializer,
    RevisionSerializer,
)
from .services.revisions import RevisionEngine
from .services.tx import storage_errors

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "True"}


def exception_handler(exc, context):
    if isinstance(exc, RevisionError):
        if exc.status_code >= 409:
            logger.warning(
                "api.%s view=%s detail=%s",
                exc.kind,
                type(context.get("view")).__name__,
                exc.message,
            )
        return Response({"error": exc.kind, "detail": exc.message}, status=exc.status_code)
    return drf_exception_handler(exc, context)


class BurstAnonThrottle(AnonRateThrottle):
    rate = conf.API_BURST_RATE


class ActorRequired(permissions.BasePermission):
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            raise Unauthenticated()
        return True


class ActorRequiredForWrites(ActorRequired):
    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return super().has_permission(request, view)


class EngineMixin:
    engine_class = RevisionEngine

    def get_engine(self) -> RevisionEngine:
        return self.engine_class()


def _write_kwargs(serializer) -> dict:
    # only submitted fields, so omitted ones keep their current value
    return dict(serializer.validated_data)


class ArticleListCreate(EngineMixin, generics.GenericAPIView):
    permission_classes = [ActorRequiredForWrites]
    throttle_classes = [BurstAnonThrottle]
    serializer_class = ArticleListSerializer

    def get_queryset(self):
        qs = (
            Article.objects.select_related("category", "author")
            .prefetch_related("tags")
            .annotate(revision_count=Count("revisions"))
            .order_by("-featured", "-published_at", "-id")
        )
        params = self.request.GET
        category = params.get("category")
        if category:
            if category.isdigit():
                qs = qs.filter(category_id=int(category))
            else:
                qs = qs.filter(category__slug=category)
        published = params.get("published")
        if published is not None:
            qs = qs.filter(published=published in TRUE_VALUES)
        if params.get("featured") in TRUE_VALUES:
            qs = qs.filter(featured=True)
        q = params.get("q")
        if q:
            qs = qs.filter(title__icontains=q)
        limit = params.get("limit")
        if limit:
            try:
                qs = qs[: int(limit)]
            except ValueError:
                pass
        return qs

    def get(self, request) -> Response:
        return Response(ArticleListSerializer(self.get_queryset(), many=True).data)

    def post(self, request) -> Response:
        serializer = ArticleWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_engine().create(request.user, **_write_kwargs(serializer))
        return Response(
            {
                "article": ArticleDetailSerializer(result.article).data,
                "revision": RevisionSerializer(result.revision).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ArticleDetail(EngineMixin, generics.GenericAPIView):
    """Article by id or slug. Reading it counts a view."""

    permission_classes = [ActorRequiredForWrites]
    throttle_classes = [BurstAnonThrottle]
    serializer_class = ArticleDetailSerializer

    @storage_errors
    def get(self, request, key: str) -> Response:
        repository = self.get_engine().repository
        pk = repository.resolve(key)
        repository.increment_views(pk)
        return Response(ArticleDetailSerializer(repository.get(pk)).data)

    def patch(self, request, key: str) -> Response:
        serializer = ArticleWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        result = self.get_engine().update(request.user, key, **_write_kwargs(serializer))
        data = dict(ArticleDetailSerializer(result.article).data)
        data["revision_created"] = result.revision_created
        return Response(data)

    @storage_errors
    def delete(self, request, key: str) -> Response:
        repository = self.get_engine().repository
        pk = repository.resolve(key)
        repository.delete(pk)
        logger.info("article.delete article=%s user=%s", pk, request.user.pk)
        return Response({"message": "Article deleted"}, status=status.HTTP_200_OK)


class RevisionHistory(EngineMixin, generics.GenericAPIView):
    permission_classes = [ActorRequired]
    serializer_class = RevisionSerializer

    def get(self, request, key: str) -> Response:
        revisions = self.get_engine().history(key)
        return Response(RevisionSerializer(revisions, many=True).data)


class RevisionDetail(EngineMixin, generics.GenericAPIView):
    permission_classes = [ActorRequired]
    serializer_class = RevisionSerializer

    def get(self, request, key: str, version: int) -> Response:
        revision = self.get_engine().revision(key, version)
        return Response(RevisionSerializer(revision).data)


class RevisionRestore(EngineMixin, generics.GenericAPIView):
    permission_classes = [ActorRequired]
    serializer_class = RevisionSerializer

    def post(self, request, key: str, revision_id: int) -> Response:
        engine = self.get_engine()
        pk = engine.repository.resolve(key)
        target = engine.store.get_by_id(pk, revision_id)
        result = engine.restore(request.user, pk, target.version)
        return Response(
            {
                "success": True,
                "article": ArticleDetailSerializer(result.article).data,
                "revision": RevisionSerializer(result.revision).data,
            }
        )


class CategoryTree(generics.ListAPIView):
    permission_classes = [permissions.AllowAny]
    throttle_classes = [BurstAnonThrottle]
    serializer_class = CategoryTreeSerializer
    pagination_class = None

    def get_queryset(self):
        return Category.objects.filter(parent__isnull=True).prefetch_related("children")


def article_suggest(request):
    q = request.GET.get("q", "")
    articles = Article.objects.filter(title__icontains=q, published=True)[: conf.SUGGEST_LIMIT]
    data = [{"title": a.title, "slug": a.slug} for a in articles]
    return JsonResponse(data, safe=False)
