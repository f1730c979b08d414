"""
Services layer - business logic for reports, emergencies, departments,
users and notifications.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise app.core.errors exceptions; routes let them propagate
- Each service is a singleton obtained through its get_*_service() function
- Notification dispatch and department stats are best-effort side effects
"""
