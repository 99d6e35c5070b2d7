from django.http import HttpResponse
from drf_spectacular.utils import extend_schema
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny


@extend_schema(exclude=True)
@api_view(["GET"])
@permission_classes([AllowAny])
def prometheus_metrics(request):
    """
    Exposes the process registry: inventory, order, fulfillment and seller ledger
    counters from both apps.
    """
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
