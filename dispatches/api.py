from __future__ import annotations

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import DomainError
from core.utils import domain_error_response, query_params_subset
from dispatches.serializers import (
    DispatchCreateSerializer,
    DispatchSerializer,
    DispatchStatusSerializer,
    DispatchUpdateSerializer,
    FeedbackCreateSerializer,
    FeedbackSerializer,
)
from dispatches.services import (
    create_dispatch,
    delete_dispatch,
    get_dispatch,
    list_dispatches,
    submit_feedback,
    update_dispatch_details,
    update_dispatch_status,
)


class DispatchListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        params = query_params_subset(
            request, "status", "courier_name", "start_date", "end_date", "search", "page", "limit"
        )
        try:
            dispatches, pagination, stats = list_dispatches(**params)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {
                "dispatches": DispatchSerializer(dispatches, many=True).data,
                "pagination": pagination,
                "stats": stats,
            }
        )

    def post(self, request):
        serializer = DispatchCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dispatch = create_dispatch(creator=request.user, **serializer.validated_data)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {"message": "Dispatch created successfully", "dispatch": DispatchSerializer(get_dispatch(dispatch.pk)).data},
            status=status.HTTP_201_CREATED,
        )


class DispatchDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, dispatch_id: int):
        try:
            dispatch = get_dispatch(dispatch_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"dispatch": DispatchSerializer(dispatch).data})

    def patch(self, request, dispatch_id: int):
        serializer = DispatchUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            update_dispatch_details(dispatch_id, **serializer.validated_data)
            dispatch = get_dispatch(dispatch_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"message": "Dispatch updated successfully", "dispatch": DispatchSerializer(dispatch).data})

    def delete(self, request, dispatch_id: int):
        try:
            delete_dispatch(dispatch_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"message": "Dispatch deleted successfully"})


class DispatchStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, dispatch_id: int):
        serializer = DispatchStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = update_dispatch_status(dispatch_id, serializer.validated_data["status"])
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {
                "message": "Dispatch status updated successfully" if result.changed else "Dispatch status unchanged",
                "dispatch": DispatchSerializer(get_dispatch(result.dispatch.pk)).data,
                "changed": result.changed,
                "prompt_feedback": result.prompt_feedback,
            }
        )


class DispatchFeedbackView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, dispatch_id: int):
        serializer = FeedbackCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            feedback = submit_feedback(dispatch_id, **serializer.validated_data)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {"message": "Feedback submitted successfully", "feedback": FeedbackSerializer(feedback).data},
            status=status.HTTP_201_CREATED,
        )
