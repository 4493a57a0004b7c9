import django_filters

from modules.audit.models import OperationLog


class OperationLogFilter(django_filters.FilterSet):
    order = django_filters.UUIDFilter(field_name="order_id")
    action_type = django_filters.CharFilter(field_name="action_type", lookup_expr="iexact")
    user = django_filters.NumberFilter(field_name="user_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = OperationLog
        fields = ["order", "action_type", "user", "start_date", "end_date"]
