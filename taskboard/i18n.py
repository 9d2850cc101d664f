"""Internationalization module - provides t("key") for translated strings.

All user-facing text must use t("key") to support multiple languages (EN/RO).
Add new translations to _TRANSLATIONS dict with both "en" and "ro" values.
"""
from typing import Dict

_current_language: str = "en"

LANGUAGES: Dict[str, Dict[str, str]] = {
    "en": {"name": "English", "flag": "🇺🇸", "code": "EN"},
    "ro": {"name": "Română", "flag": "🇷🇴", "code": "RO"},
}

_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    # Login
    "welcome": {"en": "Welcome", "ro": "Bun venit"},
    "email": {"en": "Email", "ro": "Email"},
    "password": {"en": "Password", "ro": "Parolă"},
    "sign_in": {"en": "Sign in", "ro": "Autentificare"},
    "signing_in": {"en": "Signing in...", "ro": "Se autentifică..."},
    "fields_required": {
        "en": "Email and password are required",
        "ro": "Emailul și parola sunt obligatorii",
    },
    "session_private": {
        "en": "Your session is private and secure.",
        "ro": "Sesiunea ta este privată și sigură.",
    },

    # Navigation
    "nav_dashboard": {"en": "Tasks", "ro": "Treburi"},
    "nav_about": {"en": "About", "ro": "Despre"},

    # Dashboard
    "greeting": {"en": "Hello!", "ro": "Salut!"},
    "your_user_id": {"en": "Your user ID: {user_id}", "ro": "ID-ul tău: {user_id}"},
    "connecting": {"en": "Connecting...", "ro": "Se conectează..."},
    "new_task": {"en": "New task", "ro": "Treabă nouă"},
    "add": {"en": "Add", "ro": "Adaugă"},
    "no_tasks": {"en": "No tasks yet", "ro": "Nicio treabă încă"},
    "mark_done": {"en": "Mark done", "ro": "Marchează ca făcut"},
    "mark_undone": {"en": "Mark not done", "ro": "Marchează ca nefăcut"},
    "delete": {"en": "Delete", "ro": "Șterge"},
    "done": {"en": "Done", "ro": "Făcut"},
    "untitled": {"en": "(untitled)", "ro": "(fără titlu)"},
    "sync_error": {"en": "Sync problem: {error}", "ro": "Problemă de sincronizare: {error}"},
    "sign_in_failed": {
        "en": "Could not start a session: {error}",
        "ro": "Nu s-a putut porni sesiunea: {error}",
    },
    "retry": {"en": "Retry", "ro": "Reîncearcă"},

    # About
    "about_title": {"en": "About Taskboard", "ro": "Despre Taskboard"},
    "about_body": {
        "en": "Taskboard keeps a shared task list in sync across every open client. "
              "Changes show up once the store confirms them.",
        "ro": "Taskboard ține o listă de treburi sincronizată între toți clienții deschiși. "
              "Modificările apar după ce sunt confirmate de server.",
    },
    "about_identity": {
        "en": "Each client gets its own user ID when it connects. No password is stored.",
        "ro": "Fiecare client primește propriul ID la conectare. Nu se salvează nicio parolă.",
    },
    "back": {"en": "Back", "ro": "Înapoi"},
}


def set_language(lang: str) -> None:
    """Set the current UI language. Unknown codes fall back to English."""
    global _current_language
    _current_language = lang if lang in LANGUAGES else "en"


def t(key: str) -> str:
    """Translate a key into the current language. Returns the key if missing."""
    entry = _TRANSLATIONS.get(key)
    if entry is None:
        return key
    return entry.get(_current_language) or entry.get("en", key)
