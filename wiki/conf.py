from django.conf import settings

SUGGEST_LIMIT = getattr(settings, "WIKI_SUGGEST_LIMIT", 5)
API_BURST_RATE = getattr(settings, "WIKI_API_BURST_RATE", "100/min")
ARTICLE_URL = getattr(settings, "WIKI_ARTICLE_URL", "/wiki/{slug}/")

INITIAL_COMMENT = getattr(settings, "WIKI_INITIAL_COMMENT", "initial version")
UPDATE_COMMENT = getattr(settings, "WIKI_UPDATE_COMMENT", "version update {version}")
CHECKPOINT_COMMENT = getattr(
    settings, "WIKI_CHECKPOINT_COMMENT", "autosave before restoring version {version}"
)
RESTORE_COMMENT = getattr(settings, "WIKI_RESTORE_COMMENT", "restored from version {version}")
