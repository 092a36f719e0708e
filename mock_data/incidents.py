"""Demo incidents for the in-memory store (SEED_DEMO_DATA=true)."""
from datetime import datetime, timedelta, timezone

import config
from incidents.types import IncidentRecord

INCIDENTS = [
    {
        "id": "demo-001",
        "category": "Maintenance",
        "urgency_level": 4,
        "sentiment": "Neutral",
        "action_summary": "Revisar fuga aire acondicionado",
        "suggested_reply": "Hola Ana, gracias por avisar. Un técnico pasará hoy por tu habitación.",
        "tenantName": "Ana García",
        "room": "12",
        "description": "El aire acondicionado gotea sobre la cama.",
        "status": "in_progress",
        "source": "tenant_portal",
        "created_hours_ago": 5,
        "resolved_after_minutes": None,
    },
    {
        "id": "demo-002",
        "category": "Administration",
        "urgency_level": 2,
        "sentiment": "Angry",
        "action_summary": "Cobro duplicado mensualidad",
        "suggested_reply": "Hola Tom, sentimos el doble cobro. Administración lo revisa hoy mismo.",
        "tenantName": "Tom Becker",
        "room": "31",
        "description": "Me habéis cobrado dos veces la mensualidad.",
        "status": "resolved",
        "source": "whatsapp",
        "created_hours_ago": 30,
        "resolved_after_minutes": 180,
    },
    {
        "id": "demo-003",
        "category": "Cleaning",
        "urgency_level": 3,
        "sentiment": "Neutral",
        "action_summary": "Limpiar cocina común",
        "suggested_reply": "¡Gracias por avisar! El equipo de limpieza pasará en la próxima hora.",
        "tenantName": "Lucía Pérez",
        "room": "7",
        "description": "La cocina común está muy sucia.",
        "status": "resolved",
        "source": "tenant_portal",
        "created_hours_ago": 72,
        "resolved_after_minutes": 45,
    },
    {
        "id": "demo-004",
        "category": "Internet",
        "urgency_level": 3,
        "sentiment": "Angry",
        "action_summary": "Wifi caído planta 2",
        "suggested_reply": "Hola Marco, estamos reiniciando el router de la segunda planta.",
        "tenantName": "Marco Rossi",
        "room": "24",
        "description": "No hay wifi en toda la segunda planta desde ayer.",
        "status": "open",
        "source": "email",
        "created_hours_ago": 20,
        "resolved_after_minutes": None,
    },
]


def demo_incidents(now: datetime | None = None) -> list[IncidentRecord]:
    """INCIDENTS with timestamps relative to now."""
    now = now or datetime.now(timezone.utc)
    records = []
    for item in INCIDENTS:
        data = {k: v for k, v in item.items() if k not in ("created_hours_ago", "resolved_after_minutes")}
        created = now - timedelta(hours=item["created_hours_ago"])
        resolved = (
            created + timedelta(minutes=item["resolved_after_minutes"])
            if item["resolved_after_minutes"] is not None
            else None
        )
        records.append(IncidentRecord.model_validate({
            **data,
            "coliving": config.COLIVING_NAME,
            "createdAt": created,
            "updatedAt": resolved or created,
            "resolvedAt": resolved,
        }))
    return records
