from django.contrib import admin
from .models import ProductionSchedule, Order, OrderStatus, Burrito


def _is_pending(order):
    return order is None or order.status == OrderStatus.PENDING


@admin.register(ProductionSchedule)
class ProductionScheduleAdmin(admin.ModelAdmin):
    list_display = [
        'production_date', 'day_of_week', 'burritos_ordered', 'max_burritos',
        'order_cutoff_time', 'is_active',
    ]
    list_filter = ['is_active', 'day_of_week']
    date_hierarchy = 'production_date'
    readonly_fields = ['burritos_ordered', 'created_at', 'updated_at']


class BurritoInline(admin.TabularInline):
    """Lines are editable only while the order holds no capacity."""
    model = Burrito
    extra = 0
    readonly_fields = ['created_at']

    def has_add_permission(self, request, obj=None):
        return _is_pending(obj) and super().has_add_permission(request, obj)

    def has_change_permission(self, request, obj=None):
        return _is_pending(obj) and super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return _is_pending(obj) and super().has_delete_permission(request, obj)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'production_schedule', 'status', 'total_amount', 'created_at']
    list_filter = ['status', 'production_schedule', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_phone']
    readonly_fields = [
        'order_number', 'status', 'production_schedule',
        'confirmed_at', 'prepared_at', 'ready_at', 'completed_at', 'cancelled_at',
        'created_at', 'updated_at',
    ]
    inlines = [BurritoInline]


@admin.register(Burrito)
class BurritoAdmin(admin.ModelAdmin):
    list_display = ['order', 'total_cost', 'total_calories', 'created_at']
    search_fields = ['order__order_number']

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ['order', 'created_at']
        return ['created_at']

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        if db_field.name == 'order':
            kwargs['queryset'] = Order.objects.with_status(OrderStatus.PENDING)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def has_change_permission(self, request, obj=None):
        return (obj is None or _is_pending(obj.order)) and super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return (obj is None or _is_pending(obj.order)) and super().has_delete_permission(request, obj)
