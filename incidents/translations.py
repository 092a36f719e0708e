"""Static label tables for the tenant portal and the staff dashboard (es / en)."""
from datetime import date

from incidents.types import IncidentCategory, IncidentStatus, Sentiment

SUPPORTED_LANGUAGES = ("es", "en")

LANG_NAMES = {"es": "Spanish", "en": "English"}


def normalize_language(lang: str | None, default: str = "es") -> str:
    """Two-letter code from a query param or header; unknown languages fall back to default."""
    code = (lang or "")[:2].lower()
    if code in SUPPORTED_LANGUAGES:
        return code
    return default if default in SUPPORTED_LANGUAGES else "es"


# ── Classification context ────────────────────────────────────────────────────

CONTEXT_TEMPLATES = {
    "es": "Inquilino: {name}, Habitación: {room}. Mensaje: {message}",
    "en": "Tenant: {name}, Room: {room}. Message: {message}",
}


def build_context(name: str, room: str, message: str, lang: str = "es") -> str:
    template = CONTEXT_TEMPLATES.get(lang, CONTEXT_TEMPLATES["es"])
    return template.format(name=name, room=room, message=message)


# ── Labels ────────────────────────────────────────────────────────────────────

STATUS_LABELS = {
    "es": {
        IncidentStatus.OPEN: "Abierto",
        IncidentStatus.IN_PROGRESS: "En Proceso",
        IncidentStatus.RESOLVED: "Resuelto",
        IncidentStatus.CANCELED: "Cancelado",
    },
    "en": {
        IncidentStatus.OPEN: "Open",
        IncidentStatus.IN_PROGRESS: "In Progress",
        IncidentStatus.RESOLVED: "Resolved",
        IncidentStatus.CANCELED: "Canceled",
    },
}

CATEGORY_LABELS = {
    "es": {
        IncidentCategory.MAINTENANCE: "Mantenimiento",
        IncidentCategory.CLEANING: "Limpieza",
        IncidentCategory.INTERNET: "Internet",
        IncidentCategory.ADMINISTRATION: "Administración",
        IncidentCategory.EMERGENCY: "Emergencia",
    },
    "en": {c: c.value for c in IncidentCategory},
}

CATEGORY_ICONS = {
    IncidentCategory.MAINTENANCE: "🔧",
    IncidentCategory.CLEANING: "🧹",
    IncidentCategory.INTERNET: "📶",
    IncidentCategory.ADMINISTRATION: "📋",
    IncidentCategory.EMERGENCY: "🚨",
}

SENTIMENT_LABELS = {
    "es": {
        Sentiment.POSITIVE: "Positivo",
        Sentiment.NEUTRAL: "Neutro",
        Sentiment.ANGRY: "Enfadado",
    },
    "en": {s: s.value for s in Sentiment},
}

SENTIMENT_ICONS = {
    Sentiment.POSITIVE: "😊",
    Sentiment.NEUTRAL: "😐",
    Sentiment.ANGRY: "😡",
}

URGENCY_BANDS = {
    "es": {"critical": "Crítica", "high": "Alta", "medium": "Media", "low": "Baja"},
    "en": {"critical": "Critical", "high": "High", "medium": "Medium", "low": "Low"},
}

CHANNEL_LABELS = {
    "es": {"whatsapp": "WhatsApp", "email": "Email", "portal": "Portal Web"},
    "en": {"whatsapp": "WhatsApp", "email": "Email", "portal": "Web Portal"},
}


def urgency_band(level: int) -> str:
    if level >= 5:
        return "critical"
    if level == 4:
        return "high"
    if level == 3:
        return "medium"
    return "low"


def urgency_label(level: int, lang: str = "es") -> str:
    bands = URGENCY_BANDS.get(lang, URGENCY_BANDS["es"])
    return f"{bands[urgency_band(level)]} ({level})"


def channel_of(source: str | None) -> str:
    s = (source or "").lower()
    if "whatsapp" in s:
        return "whatsapp"
    if "email" in s:
        return "email"
    return "portal"


# ── Messages ──────────────────────────────────────────────────────────────────

MESSAGES = {
    "es": {
        "submission_failed": "No pudimos procesar tu incidencia. Inténtalo de nuevo en unos segundos.",
        "submission_success": "¡Incidencia recibida! Nuestro equipo ya está al tanto.",
        "status_update_failed": "No se pudo actualizar el estado. Verifica tu conexión.",
        "incident_not_found": "La incidencia no existe.",
        "wrong_password": "Contraseña incorrecta",
        "auth_required": "Contraseña de staff inválida o ausente.",
        "session_not_found": "Sesión no encontrada.",
        "not_available": "N/A",
    },
    "en": {
        "submission_failed": "We could not process your report. Please try again in a few seconds.",
        "submission_success": "Report received! Our team is on it.",
        "status_update_failed": "Could not update the status. Check your connection.",
        "incident_not_found": "Incident not found.",
        "wrong_password": "Incorrect password",
        "auth_required": "Invalid or missing staff password.",
        "session_not_found": "Session not found.",
        "not_available": "N/A",
    },
}


def message(key: str, lang: str = "es") -> str:
    return MESSAGES.get(lang, MESSAGES["es"])[key]


# ── Dates ─────────────────────────────────────────────────────────────────────

MONTH_ABBR = {
    "es": ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"],
    "en": ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
}


def format_short_date(day: date, lang: str = "es") -> str:
    """Day + abbreviated month, e.g. "29 nov" (es) or "Nov 29" (en)."""
    month = MONTH_ABBR.get(lang, MONTH_ABBR["es"])[day.month - 1]
    if lang == "en":
        return f"{month} {day.day}"
    return f"{day.day} {month}"


# ── Example messages shown under the tenant form ─────────────────────────────

EXAMPLES = {
    "es": [
        {"label": "🛠️ Técnica", "text": "El aire acondicionado está goteando mucha agua sobre la cama y hace un ruido mecánico muy fuerte, necesito que lo revisen urgente."},
        {"label": "🧹 Limpieza", "text": "La cocina común está muy sucia, hay platos acumulados de hace días y huele mal. Por favor enviad a alguien de limpieza."},
        {"label": "🔊 Convivencia", "text": "Los vecinos de al lado tienen la música a todo volumen y están gritando, son las 2 de la mañana y no se puede dormir."},
        {"label": "📝 Admin", "text": "Revisando mi cuenta veo que me han cobrado la mensualidad dos veces este mes en la tarjeta. ¿Podéis solucionarlo?"},
        {"label": "🚨 Emergencia", "text": "HAY FUEGO en la papelera del pasillo del segundo piso!! Venid ya!!"},
    ],
    "en": [
        {"label": "🛠️ Technical", "text": "The air conditioning is dripping a lot of water onto the bed and making a loud mechanical noise, please check it urgently."},
        {"label": "🧹 Cleaning", "text": "The shared kitchen is very dirty, dishes have been piling up for days and it smells bad. Please send someone from cleaning."},
        {"label": "🔊 Neighbours", "text": "The neighbours next door are playing music at full volume and shouting, it's 2am and nobody can sleep."},
        {"label": "📝 Admin", "text": "Checking my account I see the monthly rent was charged twice to my card this month. Can you fix it?"},
        {"label": "🚨 Emergency", "text": "THERE IS A FIRE in the bin on the second floor corridor!! Come now!!"},
    ],
}
