from django.contrib import admin
from django.urls import include, path

from wiki.urls import api_urlpatterns as wiki_api

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include((wiki_api, "wiki"), namespace="wiki-api")),
]
