"""
Visit coding operations.

Code generation replaces the visit's code set in one atomic write. Manual
edits (add, swap, remove, verify) are point updates that preserve
(code_type, code) uniqueness among non-removed codes.
"""

from compliance_engine.audit import AuditEvent, audit_log, compute_change_summary
from compliance_engine.config.defaults import CODE_SOURCES
from compliance_engine.config.logging import get_logger
from compliance_engine.config.settings import get_settings
from compliance_engine.engine.coding import CodeGenerationEngine
from compliance_engine.errors import VisitCodeNotFoundError
from compliance_engine.models import CodeType, VisitCode
from compliance_engine.store import VisitStore, get_visit_store
from compliance_engine.validation import require_text, validate_code

logger = get_logger(__name__)

_AUDITED_FIELDS = {"code_type", "code", "description", "source", "auto_assigned", "verified"}


async def _get_code(store: VisitStore, visit_id: str, code_id: str) -> VisitCode:
    await store.require_visit(visit_id)
    for row in await store.list_codes(visit_id):
        if row.id == code_id:
            return row
    raise VisitCodeNotFoundError(visit_id, code_id)


async def generate_codes(
    visit_id: str,
    *,
    user_id: str | None = None,
    preserve_manual_codes: bool | None = None,
    store: VisitStore | None = None,
) -> list[VisitCode]:
    """
    Regenerate a visit's codes from its current clinical data.

    Args:
        visit_id: Visit ID
        user_id: Acting user, for the audit trail
        preserve_manual_codes: Keep manually added codes (defaults to the setting)

    Returns:
        The visit's new code set

    Raises:
        VisitNotFoundError: If the visit does not exist
    """
    store = store or get_visit_store()
    if preserve_manual_codes is None:
        preserve_manual_codes = get_settings().preserve_manual_codes

    snapshot = await store.get_snapshot(visit_id)
    codes = CodeGenerationEngine(preserve_manual_codes=preserve_manual_codes).generate(snapshot)
    await store.replace_codes(visit_id, codes)

    audit_log(
        AuditEvent.CODING_GENERATED,
        visit_id=visit_id,
        user_id=user_id,
        details={
            "code_count": len(codes),
            "replaced": len(snapshot.codes),
            "preserve_manual_codes": preserve_manual_codes,
        },
    )
    return codes


async def list_codes(visit_id: str, *, store: VisitStore | None = None) -> list[VisitCode]:
    """List a visit's codes, including removed ones."""
    store = store or get_visit_store()
    await store.require_visit(visit_id)
    return await store.list_codes(visit_id)


async def add_code(
    visit_id: str,
    code_type: CodeType,
    code: str,
    description: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> VisitCode:
    """
    Add a manual code to a visit.

    Raises:
        InvalidCodeError: If the code does not match its code system's format
        DuplicateCodeError: If the code is already active on the visit
    """
    store = store or get_visit_store()
    normalized = validate_code(code, code_type)
    description = require_text(description, "description", "add code")

    await store.require_visit(visit_id)
    row = VisitCode(
        visit_id=visit_id,
        code_type=code_type,
        code=normalized,
        description=description,
        source=CODE_SOURCES.MANUAL,
        auto_assigned=False,
    )
    await store.insert_code(row)

    audit_log(
        AuditEvent.CODING_ADDED,
        visit_id=visit_id,
        user_id=user_id,
        record_type="code",
        record_id=row.id,
        details={"code_type": code_type.value, "code": normalized},
    )
    return row


async def swap_code(
    visit_id: str,
    code_id: str,
    new_code: str,
    new_description: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> VisitCode:
    """
    Replace a code with another code of the same type.

    The swapped row becomes a manual, unverified code.

    Raises:
        VisitCodeNotFoundError: If the code row does not exist
        InvalidCodeError: If the new code is malformed
        DuplicateCodeError: If the new code is already active on the visit
    """
    store = store or get_visit_store()
    row = await _get_code(store, visit_id, code_id)
    normalized = validate_code(new_code, row.code_type)
    new_description = require_text(new_description, "description", "swap code")

    updated = row.model_copy(
        update={
            "code": normalized,
            "description": new_description,
            "source": CODE_SOURCES.MANUAL,
            "auto_assigned": False,
            "verified": False,
        }
    )
    await store.update_code(updated)

    audit_log(
        AuditEvent.CODING_SWAPPED,
        visit_id=visit_id,
        user_id=user_id,
        record_type="code",
        record_id=code_id,
        change_summary=compute_change_summary(
            row.model_dump(mode="json", include=_AUDITED_FIELDS),
            updated.model_dump(mode="json", include=_AUDITED_FIELDS),
        ),
    )
    return updated


async def remove_code(
    visit_id: str,
    code_id: str,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> VisitCode:
    """
    Mark a code as removed by the reviewing practitioner.

    Raises:
        VisitCodeNotFoundError: If the code row does not exist
    """
    store = store or get_visit_store()
    row = await _get_code(store, visit_id, code_id)
    if row.removed_by_np:
        return row

    updated = row.model_copy(update={"removed_by_np": True})
    await store.update_code(updated)

    audit_log(
        AuditEvent.CODING_REMOVED,
        visit_id=visit_id,
        user_id=user_id,
        record_type="code",
        record_id=code_id,
        details={"code_type": row.code_type.value, "code": row.code},
    )
    return updated


async def verify_code(
    visit_id: str,
    code_id: str,
    verified: bool = True,
    *,
    user_id: str | None = None,
    store: VisitStore | None = None,
) -> VisitCode:
    """
    Set a code's verified flag.

    Raises:
        VisitCodeNotFoundError: If the code row does not exist
    """
    store = store or get_visit_store()
    row = await _get_code(store, visit_id, code_id)

    updated = row.model_copy(update={"verified": verified})
    await store.update_code(updated)

    audit_log(
        AuditEvent.CODING_VERIFIED,
        visit_id=visit_id,
        user_id=user_id,
        record_type="code",
        record_id=code_id,
        details={"code": row.code, "verified": verified},
    )
    return updated
