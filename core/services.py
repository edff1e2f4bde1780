from django.contrib.contenttypes.models import ContentType

from .models import DomainActivity


class ActivityService:
    @staticmethod
    def log_activity(actor_id, verb, target, event_id=None, metadata=None):
        """
        Logs a domain activity against ``target``.

        Call inside the transaction that performs the change, so the ledger
        and the data never disagree.
        """
        if metadata is None:
            metadata = {}

        return DomainActivity.objects.create(
            actor_id=actor_id,
            verb=verb,
            content_type=ContentType.objects.get_for_model(target),
            object_id=target.pk,
            event_id=event_id,
            metadata=metadata,
        )
