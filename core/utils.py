from rest_framework.response import Response

from core.exceptions import DomainError


def domain_error_response(exc: DomainError) -> Response:
    return Response(exc.as_payload(), status=exc.status_code)


def query_params_subset(request, *names) -> dict:
    """Non-empty query params by name; absent or blank values are skipped."""
    params = {}
    for name in names:
        value = request.query_params.get(name)
        if value not in (None, ""):
            params[name] = value
    return params
