"""
Role-scoped query layer.

Turns the request principal into Firestore filters for list queries and
into allow/deny decisions for single records:

- Citizen: own records only (reports.citizen_id / emergencies.reported_by)
- Officer: reports of assigned departments; all emergencies
- Admin:   everything

Every function dispatches on the principal variant and raises TypeError for
anything that is not one of the three known variants.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from app.core.errors import ErrorMessages, PermissionDeniedError
from app.models.user import AdminPrincipal, CitizenPrincipal, OfficerPrincipal
from app.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)

Filter = Tuple[str, str, Any]

# Firestore caps the number of values in an `in` filter.
MAX_IN_VALUES = 30


def _unknown_principal(principal) -> TypeError:
    return TypeError(f"Unknown principal variant: {type(principal).__name__}")


def report_filters(principal, department_id: Optional[str] = None) -> Optional[List[Filter]]:
    """
    Firestore filters that restrict a report query to what principal may see.

    Returns:
        A list of (field, op, value) filters, or None when the principal can
        see no reports at all (officer without department assignments).

    Raises:
        PermissionDeniedError: officer asked for a department outside their assignments
    """
    if isinstance(principal, CitizenPrincipal):
        filters: List[Filter] = [("citizen_id", "==", principal.id)]
        if department_id:
            filters.append(("department_id", "==", department_id))
        return filters

    if isinstance(principal, OfficerPrincipal):
        if department_id:
            if not principal.is_assigned_to(department_id):
                logger.warning(f"Officer {principal.id} denied access to department {department_id}")
                raise PermissionDeniedError(ErrorMessages.DEPARTMENT_NOT_ASSIGNED)
            return [("department_id", "==", department_id)]
        if not principal.assigned_departments:
            return None
        if len(principal.assigned_departments) > MAX_IN_VALUES:
            # Too many for one `in` filter; callers post-filter with can_access_report.
            return []
        return [("department_id", "in", list(principal.assigned_departments))]

    if isinstance(principal, AdminPrincipal):
        return [("department_id", "==", department_id)] if department_id else []

    raise _unknown_principal(principal)


def emergency_filters(principal) -> List[Filter]:
    if isinstance(principal, CitizenPrincipal):
        return [("reported_by", "==", principal.id)]
    if isinstance(principal, (OfficerPrincipal, AdminPrincipal)):
        return []
    raise _unknown_principal(principal)


def apply_filters(query, filters: List[Filter]):
    for field, op, value in filters:
        query = where_filter(query, field, op, value)
    return query


def can_access_report(principal, report: Dict) -> bool:
    if isinstance(principal, CitizenPrincipal):
        return report.get("citizen_id") == principal.id
    if isinstance(principal, OfficerPrincipal):
        return principal.is_assigned_to(report.get("department_id"))
    if isinstance(principal, AdminPrincipal):
        return True
    raise _unknown_principal(principal)


def can_access_emergency(principal, emergency: Dict) -> bool:
    if isinstance(principal, CitizenPrincipal):
        return emergency.get("reported_by") == principal.id
    if isinstance(principal, (OfficerPrincipal, AdminPrincipal)):
        return True
    raise _unknown_principal(principal)


def ensure_report_access(principal, report: Dict) -> None:
    if not can_access_report(principal, report):
        logger.warning(f"User {principal.id} ({principal.role}) denied access to report {report.get('id')}")
        raise PermissionDeniedError(ErrorMessages.REPORT_ACCESS_DENIED)


def ensure_emergency_access(principal, emergency: Dict) -> None:
    if not can_access_emergency(principal, emergency):
        logger.warning(f"User {principal.id} ({principal.role}) denied access to emergency {emergency.get('id')}")
        raise PermissionDeniedError(ErrorMessages.EMERGENCY_ACCESS_DENIED)


def ensure_report_manager(principal, report: Dict) -> None:
    """Only officers assigned to the report's department (or admins) may change it."""
    if isinstance(principal, CitizenPrincipal):
        raise PermissionDeniedError(ErrorMessages.FORBIDDEN)
    if isinstance(principal, OfficerPrincipal):
        if not principal.is_assigned_to(report.get("department_id")):
            logger.warning(
                f"Officer {principal.id} denied status change on report {report.get('id')} "
                f"(department {report.get('department_id')})"
            )
            raise PermissionDeniedError(ErrorMessages.DEPARTMENT_NOT_ASSIGNED)
        return
    if isinstance(principal, AdminPrincipal):
        return
    raise _unknown_principal(principal)
