from django.db import transaction

from .models import Notification, NotificationPreference


def _chunked(lst, size=1000):
    for i in range(0, len(lst), size):
        yield lst[i:i + size]


def _get_prefs_map(user_ids):
    prefs = NotificationPreference.objects.filter(user_id__in=user_ids)
    return {p.user_id: p for p in prefs}


def broadcast_inapp(users_qs, title, body="", url="", level="INFO", category="SYSTEM"):
    user_ids = list(users_qs.values_list("id", flat=True))
    if not user_ids:
        return 0

    prefs_map = _get_prefs_map(user_ids)
    cat = (category or "SYSTEM").upper()

    total = 0
    for batch in _chunked(user_ids, 1000):
        rows = []
        for uid in batch:
            pref = prefs_map.get(uid)
            if pref and pref.is_muted(cat):
                continue
            rows.append(Notification(
                user_id=uid,
                category=cat,
                title=title,
                body=body,
                url=url,
                level=level,
            ))
        if rows:
            Notification.objects.bulk_create(rows)
            total += len(rows)
    return total


def notify_user(user_id, title, body="", url="", level="INFO", category="SYSTEM"):
    """
    Queue one in-app notification for after the surrounding transaction
    commits. Nothing is written if the transaction rolls back.
    """
    if not user_id:
        return

    def _run():
        pref = NotificationPreference.objects.filter(user_id=user_id).first()
        cat = (category or "SYSTEM").upper()
        if pref and pref.is_muted(cat):
            return
        Notification.objects.create(
            user_id=user_id,
            category=cat,
            title=title,
            body=body,
            url=url,
            level=level,
        )

    transaction.on_commit(_run)
