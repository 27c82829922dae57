from __future__ import annotations

from rest_framework import serializers

from .models import Article, Category, Revision


class CategoryTreeSerializer(serializers.ModelSerializer):
    children = serializers.SerializerMethodField()
    article_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ["id", "title", "slug", "description", "icon", "order", "children", "article_count"]

    def get_children(self, obj: Category) -> list:
        return CategoryTreeSerializer(obj.children.all(), many=True).data

    def get_article_count(self, obj: Category) -> int:
        return obj.articles.count()


class ArticleSerializer(serializers.ModelSerializer):
    category = serializers.PrimaryKeyRelatedField(read_only=True)
    author = serializers.SlugRelatedField(read_only=True, slug_field="username")
    tags = serializers.SlugRelatedField(many=True, read_only=True, slug_field="slug")

    class Meta:
        model = Article
        fields = [
            "id",
            "title",
            "slug",
            "description",
            "body",
            "category",
            "author",
            "tags",
            "published",
            "featured",
            "published_at",
            "created_at",
            "updated_at",
            "views",
        ]


class ArticleListSerializer(ArticleSerializer):
    revision_count = serializers.IntegerField(read_only=True)

    class Meta(ArticleSerializer.Meta):
        fields = ArticleSerializer.Meta.fields + ["revision_count"]


class ArticleDetailSerializer(ArticleSerializer):
    body_html = serializers.CharField(source="content_html", read_only=True)

    class Meta(ArticleSerializer.Meta):
        fields = ArticleSerializer.Meta.fields + ["body_html"]


class RevisionSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(read_only=True)

    class Meta:
        model = Revision
        fields = [
            "id",
            "article",
            "version",
            "title",
            "description",
            "body",
            "change_kind",
            "comment",
            "author",
            "author_name",
            "created_at",
        ]


class ArticleWriteSerializer(serializers.Serializer):
    """Input for create and update. Only submitted fields reach the engine."""

    title = serializers.CharField(max_length=200, trim_whitespace=False)
    slug = serializers.SlugField(
        max_length=200, required=False, allow_blank=True, allow_unicode=True
    )
    description = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, trim_whitespace=False
    )
    body = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    category = serializers.IntegerField(required=False, allow_null=True)
    published = serializers.BooleanField(required=False)
    featured = serializers.BooleanField(required=False)
    tags = serializers.ListField(child=serializers.SlugField(), required=False)
