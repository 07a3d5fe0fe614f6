from django.apps import AppConfig


class ClinicBillingApiConfig(AppConfig):
    name = "clinic_billing_api"
    verbose_name = "Clinic Billing API"

    def ready(self):
        from django.conf import settings

        from clinic_billing.adapters.config.composition_root import (
            setup_di_container_from_settings,
        )

        # ─── DI container ───────────────────────────────────────────
        setup_di_container_from_settings(settings)
