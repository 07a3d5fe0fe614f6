from django.db import transaction

from clinic_billing.core.domain.repositories.sequence_repository import SequenceRepository
from plugins.django_interface.models import BillingSequence


class SequenceRepoImpl(SequenceRepository):
    def next_value(self, scope: str) -> int:
        with transaction.atomic():
            BillingSequence.objects.get_or_create(scope=scope)
            seq = BillingSequence.objects.select_for_update().get(scope=scope)
            seq.value += 1
            seq.save(update_fields=["value"])
            return seq.value
