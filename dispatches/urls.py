from django.urls import path

from dispatches.api import (
    DispatchDetailView,
    DispatchFeedbackView,
    DispatchListCreateView,
    DispatchStatusView,
)


urlpatterns = [
    path("", DispatchListCreateView.as_view(), name="dispatch-list"),
    path("<int:dispatch_id>/", DispatchDetailView.as_view(), name="dispatch-detail"),
    path("<int:dispatch_id>/status/", DispatchStatusView.as_view(), name="dispatch-status"),
    path("<int:dispatch_id>/feedback/", DispatchFeedbackView.as_view(), name="dispatch-feedback"),
]
