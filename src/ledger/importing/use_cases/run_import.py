"""Run import use case.

Reconciles one spreadsheet batch against the ledger: every row is
normalized, validated and checked for duplicates, and clean rows are
inserted. The outcome of the whole batch is returned as one ImportReport.
"""

import logging
from typing import Any, Optional

from ...api.exceptions import BoundsError, ImportAbortedError, IntegrityError, StructuralError
from ..domain.duplicates import DuplicateTracker
from ..domain.entities import (
    Accepted,
    DeviceStatus,
    ImportReport,
    ImportRow,
    RecordKind,
    RowOutcome,
    SheetData,
    Skipped,
    Violation,
    ViolationKind,
    record_type,
)
from ..domain.policies import BoundsPolicy, CommitMode, HeaderPolicy, ImportPolicy, get_policy
from ..domain.ports import ILedgerStore
from ..domain.rules import ValidationContext, reference_key, validate_row

logger = logging.getLogger(__name__)


class RunImportUseCase:
    """Import a batch of spreadsheet rows for one ledger kind.

    This use case:
    1. Checks the sheet's headers against the policy (aborts on mismatch)
    2. Checks no row has data right of the last header (aborts or ignores)
    3. Normalizes, validates and de-duplicates each row in order
    4. Inserts accepted rows and tallies successes and failures

    A row that fails never stops the batch, and rows already inserted are
    never rolled back.
    """

    def __init__(self, store: ILedgerStore):
        """Initialize the use case.

        Args:
            store: Ledger persistence port
        """
        self.store = store

    async def execute(
        self,
        sheet: SheetData,
        policy: Optional[ImportPolicy] = None,
        kind: Optional[RecordKind] = None,
    ) -> ImportReport:
        """Execute the use case.

        Args:
            sheet: Parsed headers and rows
            policy: Import policy; defaults to the kind's default policy
            kind: Ledger kind, used only when policy is omitted

        Returns:
            ImportReport for the batch
        """
        if policy is None:
            if kind is None:
                raise ValueError("Either policy or kind is required")
            policy = get_policy(kind)

        logger.info(f"Starting {policy.kind.value} import: {len(sheet.rows)} rows")

        try:
            self._check_headers(sheet, policy)
            self._check_bounds(sheet, policy)
        except ImportAbortedError as e:
            logger.warning(f"{policy.kind.value} import aborted: {e.message}")
            return self._aborted(policy, e)

        tracker = await self._load_tracker(policy)
        context = await self._load_context(policy)

        if policy.commit_mode == CommitMode.ALL_OR_NOTHING:
            report = await self._run_all_or_nothing(sheet, policy, tracker, context)
        else:
            report = await self._run_row_isolated(sheet, policy, tracker, context)

        logger.info(
            f"Finished {policy.kind.value} import: "
            f"{report.success_count} succeeded, {report.error_count} failed"
        )
        return report

    # ============================================
    # Batch-level checks
    # ============================================

    def _check_headers(self, sheet: SheetData, policy: ImportPolicy) -> None:
        declared = [h for h in sheet.headers if h]
        expected = policy.headers

        if policy.header_policy == HeaderPolicy.SUPERSET:
            missing = [h for h in expected if h not in declared]
            if missing:
                raise StructuralError(
                    f"Missing headers: {', '.join(missing)}",
                    headers=missing,
                )
        else:
            unknown = [h for h in declared if h not in expected]
            if unknown:
                raise StructuralError(
                    f"Invalid headers: {', '.join(unknown)}",
                    headers=unknown,
                )

    def _check_bounds(self, sheet: SheetData, policy: ImportPolicy) -> None:
        if policy.bounds_policy == BoundsPolicy.IGNORE:
            return

        column_count = len(sheet.headers)
        for row in sheet.rows:
            if row.extra_cells(column_count):
                row_number = row.index + policy.row_number_offset
                raise BoundsError(
                    f"Row {row_number}: data found outside the defined columns",
                    row_number=row_number,
                )

    def _aborted(self, policy: ImportPolicy, error: ImportAbortedError) -> ImportReport:
        if isinstance(error, BoundsError):
            violation = Violation(
                row_number=error.row_number or 0,
                field="",
                message=error.message,
                kind=ViolationKind.BOUNDS,
            )
        else:
            violation = Violation(
                row_number=0,
                field="",
                message=error.message,
                kind=ViolationKind.STRUCTURE,
            )
        return ImportReport(
            kind=policy.kind,
            violations=(violation,),
            aborted=True,
            abort_reason=error.message,
        )

    # ============================================
    # Batch state
    # ============================================

    async def _load_tracker(self, policy: ImportPolicy) -> DuplicateTracker:
        tracker = DuplicateTracker(
            {spec.name: spec.identity for spec in policy.unique_fields}
        )
        if not policy.unique_fields:
            return tracker

        existing = await self.store.list_existing(policy.kind)
        for spec in policy.unique_fields:
            tracker.seed(spec.name, (record.get(spec.name) for record in existing))

        logger.debug(f"Loaded {len(existing)} existing {policy.kind.value} keys")
        return tracker

    async def _load_context(self, policy: ImportPolicy) -> ValidationContext:
        context = ValidationContext(allow_lists=dict(policy.allow_lists))
        if policy.check_references and policy.kind.is_device:
            addresses = await self.store.list_existing(RecordKind.ADDRESSES)
            context.address_codes = {
                reference_key(str(a.get("address_code") or "")) for a in addresses
            }
        return context

    # ============================================
    # Row evaluation
    # ============================================

    def _evaluate(
        self,
        row: ImportRow,
        sheet: SheetData,
        policy: ImportPolicy,
        tracker: DuplicateTracker,
        context: ValidationContext,
    ) -> RowOutcome:
        row_number = row.index + policy.row_number_offset
        raw_cells = row.cells(sheet.headers)
        values: dict[str, Any] = {
            spec.name: spec.normalize(raw_cells.get(spec.label))
            for spec in policy.fields
        }

        violations = validate_row(policy.fields, raw_cells, values, row_number, context)

        for spec in policy.unique_fields:
            duplicate = tracker.check(spec.name, values[spec.name])
            if duplicate == ViolationKind.ALREADY_EXISTS:
                message = f"Row {row_number}: {spec.label} '{values[spec.name]}' already exists"
            elif duplicate == ViolationKind.DUPLICATE_IN_FILE:
                message = f"Row {row_number}: {spec.label} '{values[spec.name]}' is duplicated within the file"
            else:
                continue
            violations.append(
                Violation(
                    row_number=row_number,
                    field=spec.name,
                    message=message,
                    kind=duplicate,
                )
            )

        if violations:
            logger.debug(f"Row {row_number} skipped with {len(violations)} violations")
            return Skipped(row_number=row_number, violations=tuple(violations))

        if policy.derives_status:
            label = ""
            if policy.has_field("status"):
                label = str(raw_cells.get(policy.spec_for("status").label) or "").strip()
            values["status"] = DeviceStatus.derive(
                label,
                values.get("employee_code", ""),
                values.get("address_code", ""),
            ).value

        record = record_type(policy.kind).from_dict(values)
        return Accepted(row_number=row_number, record=record)

    async def _insert(self, outcome: Accepted, policy: ImportPolicy) -> Optional[Violation]:
        """Insert an accepted row. Returns a violation on failure."""
        try:
            await self.store.insert(policy.kind, outcome.record)
        except IntegrityError as e:
            # Written by someone else after the existing keys were loaded
            if e.constraint != "unique":
                return self._insert_failed(outcome, e)
            logger.warning(f"Row {outcome.row_number}: unique constraint hit on insert: {e}")
            name = f" ({e.constraint_name})" if e.constraint_name else ""
            return Violation(
                row_number=outcome.row_number,
                field="",
                message=f"Row {outcome.row_number}: already exists{name}",
                kind=ViolationKind.ALREADY_EXISTS,
            )
        except Exception as e:
            return self._insert_failed(outcome, e)
        logger.debug(f"Row {outcome.row_number} inserted")
        return None

    @staticmethod
    def _insert_failed(outcome: Accepted, e: Exception) -> Violation:
        logger.warning(f"Row {outcome.row_number}: insert failed: {e}")
        return Violation(
            row_number=outcome.row_number,
            field="",
            message=f"Row {outcome.row_number}: failed to save ({e})",
            kind=ViolationKind.PERSISTENCE,
        )

    async def _run_row_isolated(
        self,
        sheet: SheetData,
        policy: ImportPolicy,
        tracker: DuplicateTracker,
        context: ValidationContext,
    ) -> ImportReport:
        success_count = 0
        error_count = 0
        violations: list[Violation] = []

        for row in sheet.rows:
            if row.is_blank():
                continue

            outcome = self._evaluate(row, sheet, policy, tracker, context)
            if isinstance(outcome, Skipped):
                error_count += 1
                violations.extend(outcome.violations)
                continue

            failure = await self._insert(outcome, policy)
            if failure:
                error_count += 1
                violations.append(failure)
                continue

            tracker.register_all(outcome.record.to_dict())
            success_count += 1

        return ImportReport(
            kind=policy.kind,
            success_count=success_count,
            error_count=error_count,
            violations=tuple(violations),
        )

    async def _run_all_or_nothing(
        self,
        sheet: SheetData,
        policy: ImportPolicy,
        tracker: DuplicateTracker,
        context: ValidationContext,
    ) -> ImportReport:
        accepted: list[Accepted] = []
        violations: list[Violation] = []
        error_count = 0

        for row in sheet.rows:
            if row.is_blank():
                continue

            outcome = self._evaluate(row, sheet, policy, tracker, context)
            if isinstance(outcome, Skipped):
                error_count += 1
                violations.extend(outcome.violations)
            else:
                tracker.register_all(outcome.record.to_dict())
                accepted.append(outcome)

        if violations:
            logger.warning(
                f"{policy.kind.value} import rejected: "
                f"{error_count} invalid rows, nothing inserted"
            )
            return ImportReport(
                kind=policy.kind,
                success_count=0,
                error_count=error_count,
                violations=tuple(violations),
            )

        success_count = 0
        for outcome in accepted:
            failure = await self._insert(outcome, policy)
            if failure:
                error_count += 1
                violations.append(failure)
            else:
                success_count += 1

        return ImportReport(
            kind=policy.kind,
            success_count=success_count,
            error_count=error_count,
            violations=tuple(violations),
        )
