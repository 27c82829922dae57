"""Management command to seed an admin user, a category tree and a first article."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandParser

from ...models import Article, Category
from ...services.revisions import RevisionEngine

CATEGORIES = [
    {
        "title": "Getting started",
        "slug": "start",
        "icon": "Gamepad2",
        "order": 1,
        "children": [
            {"title": "How to start", "slug": "how-to-start"},
            {"title": "Creating a character", "slug": "character"},
        ],
    },
    {
        "title": "Roleplay basics",
        "slug": "rp",
        "icon": "BookOpen",
        "order": 2,
        "children": [
            {"title": "Rules", "slug": "rp-rules"},
            {"title": "Terms", "slug": "rp-terms"},
        ],
    },
]

WELCOME_BODY = """# Welcome

This wiki keeps every edit. Open the history of any article to see or
restore earlier versions. Continue with [[How to start]].
"""


class Command(BaseCommand):
    help = "Create an admin user, sample categories and a welcome article"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("--username", default="admin")
        parser.add_argument("--email", default="admin@example.com")
        parser.add_argument("--password", default="admin123")

    def handle(self, *args, **options):
        User = get_user_model()
        admin, created = User.objects.get_or_create(
            username=options["username"],
            defaults={"email": options["email"], "is_staff": True, "is_superuser": True},
        )
        if created:
            admin.set_password(options["password"])
            admin.save()

        for entry in CATEGORIES:
            parent, _ = Category.objects.get_or_create(
                slug=entry["slug"],
                defaults={"title": entry["title"], "icon": entry["icon"], "order": entry["order"]},
            )
            for child_order, child in enumerate(entry["children"], start=1):
                Category.objects.get_or_create(
                    slug=child["slug"],
                    defaults={"title": child["title"], "parent": parent, "order": child_order},
                )

        articles = 0
        if not Article.objects.filter(slug="welcome").exists():
            RevisionEngine().create(
                admin,
                title="Welcome",
                slug="welcome",
                description="What this wiki is about",
                body=WELCOME_BODY,
                category=Category.objects.get(slug="how-to-start"),
                published=True,
                featured=True,
            )
            articles = 1
        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded admin {admin.username!r} ({'new' if created else 'existing'}), "
                f"{Category.objects.count()} categories, {articles} new articles"
            )
        )
