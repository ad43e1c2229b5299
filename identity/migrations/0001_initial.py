from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BrowsingContext",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("context_key", models.CharField(max_length=128, unique=True)),
                ("anonymous_token", models.CharField(blank=True, db_index=True, max_length=96, null=True)),
                ("account_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("merging_account_id", models.CharField(blank=True, max_length=64, null=True)),
                ("merge_started_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-updated_at"],
            },
        ),
    ]
