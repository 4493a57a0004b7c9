import django.core.serializers.json
import django.db.models.deletion
import uuid6
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="OperationLog",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("order_id", models.UUIDField(db_index=True)),
                (
                    "voucher_number",
                    models.CharField(blank=True, default="", max_length=64),
                ),
                (
                    "action_type",
                    models.CharField(
                        choices=[
                            ("claim", "Claim"),
                            ("pick", "Pick"),
                            ("pack", "Pack"),
                            ("void", "Void"),
                            ("set_urgent", "Set urgent"),
                            ("delete", "Delete"),
                            ("import", "Import"),
                            ("scan_error", "Scan error"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "details",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="operation_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "operation_logs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["action_type"], name="oplog_action_type_idx"),
                    models.Index(fields=["-created_at"], name="oplog_created_idx"),
                ],
            },
        ),
    ]
