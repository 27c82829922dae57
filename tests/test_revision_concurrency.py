import threading

from django.db import close_old_connections, connection
from django.test import TransactionTestCase

from wiki.errors import Conflict, Unavailable
from wiki.models import Article, Revision
from wiki.services.revisions import RevisionEngine
from tests.factories import make_article, make_user


class RevisionConcurrencyTests(TransactionTestCase):
    reset_sequences = True

    def setUp(self):
        self.user = make_user()
        self.engine = RevisionEngine()

    def _run_parallel(self, jobs):
        outcomes = []
        lock = threading.Lock()

        def run(job):
            close_old_connections()
            try:
                result = job()
            except (Unavailable, Conflict) as exc:
                result = exc
            finally:
                connection.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=run, args=(job,)) for job in jobs]
        for th in threads:
            th.start()
        for th in threads:
            th.join()
        return outcomes

    def _assert_gap_free(self, article):
        numbers = list(
            Revision.objects.filter(article=article)
            .order_by("version")
            .values_list("version", flat=True)
        )
        self.assertEqual(numbers, list(range(1, len(numbers) + 1)))
        return numbers

    def test_concurrent_updates_get_distinct_versions(self):
        article = make_article(self.user, body="start")
        jobs = [
            (lambda i=i: self.engine.update(self.user, article.pk, body=f"edit {i}"))
            for i in range(6)
        ]
        outcomes = self._run_parallel(jobs)

        self.assertEqual([o for o in outcomes if isinstance(o, Exception)], [])
        numbers = self._assert_gap_free(article)
        self.assertEqual(numbers, list(range(1, 8)))
        written = sorted(o.revision.version for o in outcomes)
        self.assertEqual(written, list(range(2, 8)))

        article.refresh_from_db()
        latest = Revision.objects.filter(article=article).order_by("-version").first()
        self.assertEqual(article.body, latest.body)

    def test_concurrent_restores_and_updates_stay_ordered(self):
        article = make_article(self.user, body="v1")
        self.engine.update(self.user, article.pk, body="v2")
        jobs = [
            lambda: self.engine.restore(self.user, article.pk, 1),
            lambda: self.engine.update(self.user, article.pk, body="v3"),
            lambda: self.engine.restore(self.user, article.pk, 2),
        ]
        outcomes = self._run_parallel(jobs)

        self.assertEqual([o for o in outcomes if isinstance(o, Exception)], [])
        numbers = self._assert_gap_free(article)
        expected = 2
        for o in outcomes:
            expected += 2 if o.checkpoint is not None else int(o.revision_created)
        self.assertEqual(len(numbers), expected)

    def test_different_articles_do_not_interfere(self):
        a = make_article(self.user, title="A")
        b = make_article(self.user, title="B")
        self._run_parallel(
            [
                lambda: self.engine.update(self.user, a.pk, body="a2"),
                lambda: self.engine.update(self.user, b.pk, body="b2"),
            ]
        )
        self._assert_gap_free(a)
        self._assert_gap_free(b)
        self.assertEqual(Article.objects.count(), 2)
