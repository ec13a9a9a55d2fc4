"""Message catalogs and locale resolution.

The active locale comes from the ``lang`` cookie (see ``security.SecurityMiddleware``)
and is stored on ``request.state.locale``.
"""
from typing import Dict

DEFAULT_LOCALE = "en"
COOKIE_NAME = "lang"
SUPPORTED_LOCALES = ("en", "hu")

CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "validation.required": "This field is required",
        "validation.min": "Must be at least {0}",
        "validation.max": "Must be at most {0}",
        "validation.min_len": "Must be at least {0} characters",
        "validation.max_len": "Must be at most {0} characters",
        "validation.gt": "Must be greater than {0}",
        "validation.gte": "Must be {0} or more",
        "validation.email": "Must be a valid email address",
        "entries.title": "Entries",
        "entries.notifications.created": "Entry created",
        "entries.notifications.updated": "Entry updated",
        "entries.notifications.deleted": "Entry deleted",
        "entries.notifications.create_failed": "Could not create entry",
        "entries.notifications.update_failed": "Could not update entry",
        "entries.notifications.delete_failed": "Could not delete entry",
        "entries.notifications.not_found": "Entry not found",
        "participants.notifications.added": "Participant added",
        "participants.notifications.updated": "Participant updated",
        "participants.notifications.deleted": "Participant removed",
        "participants.notifications.add_failed": "Could not add participant",
        "participants.notifications.update_failed": "Could not update participant",
        "participants.notifications.delete_failed": "Could not remove participant",
        "payees.title": "Payees",
        "payees.notifications.created": "Payee created",
        "payees.notifications.updated": "Payee updated",
        "payees.notifications.deleted": "Payee deleted",
        "payees.notifications.create_failed": "Could not create payee",
        "payees.notifications.update_failed": "Could not update payee",
        "payees.notifications.delete_failed": "Could not delete payee",
        "payees.notifications.not_found": "Payee not found",
        "expenses.title": "Expenses",
        "expenses.total": "Total",
        "expenses.notifications.created": "Expense created",
        "expenses.notifications.updated": "Expense updated",
        "expenses.notifications.deleted": "Expense deleted",
        "expenses.notifications.create_failed": "Could not create expense",
        "expenses.notifications.update_failed": "Could not update expense",
        "expenses.notifications.delete_failed": "Could not delete expense",
        "auth.login_title": "Sign in",
        "auth.link_sent": "Check your inbox for a sign-in link",
        "auth.link_invalid": "This sign-in link is invalid or has expired",
        "auth.email_failed": "We could not send the sign-in email. Try again later.",
        "auth.signup_disabled": "Signup is disabled",
        "admin.broadcast_sent": "Refresh sent to {0} clients",
        "table.search": "Search",
        "table.empty": "Nothing here yet",
        "table.page_of": "Page {0} of {1}",
        "errors.render_failed": "Saved, but the page could not be refreshed. Reload to see the change.",
    },
    "hu": {
        "validation.required": "Kötelező mező",
        "validation.min": "Legalább {0} legyen",
        "validation.max": "Legfeljebb {0} legyen",
        "validation.min_len": "Legalább {0} karakter legyen",
        "validation.max_len": "Legfeljebb {0} karakter legyen",
        "validation.gt": "Nagyobb legyen, mint {0}",
        "validation.gte": "Legalább {0} legyen",
        "validation.email": "Érvényes e-mail címet adj meg",
        "entries.title": "Tételek",
        "entries.notifications.created": "Tétel létrehozva",
        "entries.notifications.updated": "Tétel frissítve",
        "entries.notifications.deleted": "Tétel törölve",
        "entries.notifications.create_failed": "A tétel létrehozása nem sikerült",
        "entries.notifications.update_failed": "A tétel frissítése nem sikerült",
        "entries.notifications.delete_failed": "A tétel törlése nem sikerült",
        "entries.notifications.not_found": "A tétel nem található",
        "participants.notifications.added": "Résztvevő hozzáadva",
        "participants.notifications.updated": "Résztvevő frissítve",
        "participants.notifications.deleted": "Résztvevő eltávolítva",
        "participants.notifications.add_failed": "A résztvevő hozzáadása nem sikerült",
        "participants.notifications.update_failed": "A résztvevő frissítése nem sikerült",
        "participants.notifications.delete_failed": "A résztvevő eltávolítása nem sikerült",
        "payees.title": "Kedvezményezettek",
        "payees.notifications.created": "Kedvezményezett létrehozva",
        "payees.notifications.updated": "Kedvezményezett frissítve",
        "payees.notifications.deleted": "Kedvezményezett törölve",
        "payees.notifications.create_failed": "A kedvezményezett létrehozása nem sikerült",
        "payees.notifications.update_failed": "A kedvezményezett frissítése nem sikerült",
        "payees.notifications.delete_failed": "A kedvezményezett törlése nem sikerült",
        "payees.notifications.not_found": "A kedvezményezett nem található",
        "expenses.title": "Kiadások",
        "expenses.total": "Összesen",
        "expenses.notifications.created": "Kiadás létrehozva",
        "expenses.notifications.updated": "Kiadás frissítve",
        "expenses.notifications.deleted": "Kiadás törölve",
        "expenses.notifications.create_failed": "A kiadás létrehozása nem sikerült",
        "expenses.notifications.update_failed": "A kiadás frissítése nem sikerült",
        "expenses.notifications.delete_failed": "A kiadás törlése nem sikerült",
        "auth.login_title": "Bejelentkezés",
        "auth.link_sent": "A bejelentkező linket elküldtük e-mailben",
        "auth.link_invalid": "A bejelentkező link érvénytelen vagy lejárt",
        "auth.email_failed": "Nem sikerült elküldeni a bejelentkező e-mailt. Próbáld újra később.",
        "auth.signup_disabled": "A regisztráció le van tiltva",
        "admin.broadcast_sent": "Frissítés elküldve {0} kliensnek",
        "table.search": "Keresés",
        "table.empty": "Még nincs semmi",
        "table.page_of": "{0}. oldal / {1}",
        "errors.render_failed": "A mentés sikerült, de az oldal nem frissült. Töltsd újra.",
    },
}


def normalize_locale(code: str | None) -> str:
    if not code:
        return DEFAULT_LOCALE
    code = code.strip().lower().replace("_", "-").split("-")[0]
    return code if code in SUPPORTED_LOCALES else DEFAULT_LOCALE


def translate(locale: str, key: str, *args) -> str:
    """Look up ``key`` in the locale's catalog, falling back to English, then the key itself."""
    catalog = CATALOGS.get(locale) or CATALOGS[DEFAULT_LOCALE]
    template = catalog.get(key) or CATALOGS[DEFAULT_LOCALE].get(key, key)
    return template.format(*args) if args else template


def request_locale(request) -> str:
    return getattr(request.state, "locale", None) or DEFAULT_LOCALE


def t(request, key: str, *args) -> str:
    return translate(request_locale(request), key, *args)
