from __future__ import annotations

from django.urls import path

from .views import EventRecordsView

app_name = "records"

urlpatterns = [
    path("<str:event_id>/", EventRecordsView.as_view(), name="event-records"),
]
