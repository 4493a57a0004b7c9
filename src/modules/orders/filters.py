import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    is_urgent = django_filters.BooleanFilter(field_name="is_urgent")
    voucher_number = django_filters.CharFilter(
        field_name="voucher_number", lookup_expr="icontains"
    )
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "is_urgent",
            "voucher_number",
            "start_date",
            "end_date",
        ]
