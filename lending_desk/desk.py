"""
Lending Desk

Wires storage, the audit trail and the record managers together and exposes
the page-level computations (portfolio summary, month installments,
distribution report) over freshly loaded records.
"""

from datetime import date, timedelta
from typing import List, Optional

from .aggregation import PortfolioSummary, aggregate
from .audit import AuditTrail
from .config import LendingDeskConfig, get_config
from .installments import installments_for_month, installments_within
from .loans import LoanManager
from .logging_config import get_logger, log_action
from .models import Installment
from .partners import PartnerDirectory
from .payments import PaymentManager
from .reports import MonthOverview, distribution_report, month_overview
from .storage import StorageInterface, create_storage


logger = get_logger(__name__)


class LendingDesk:
    """Lending desk with all components initialized"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        config: Optional[LendingDeskConfig] = None
    ):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.database_url)

        self.audit_trail = AuditTrail(self.storage) if self.config.enable_audit_logging else None
        self.loan_manager = LoanManager(
            self.storage,
            self.audit_trail,
            allocation_tolerance=self.config.allocation_tolerance,
            owner_label=self.config.legacy_owner_label,
            partner_label=self.config.legacy_partner_label,
        )
        self.payment_manager = PaymentManager(
            self.storage,
            self.loan_manager,
            self.audit_trail,
            paid_threshold=self.config.paid_threshold,
            overpayment_tolerance=self.config.overpayment_tolerance,
            safety_cap=self.config.schedule_safety_cap,
        )
        self.partner_directory = PartnerDirectory(self.storage, self.audit_trail)

    def _engine_options(self) -> dict:
        return dict(
            safety_cap=self.config.schedule_safety_cap,
            paid_threshold=self.config.paid_threshold,
            unassigned_label=self.config.unassigned_investor_label,
        )

    def portfolio_summary(self, as_of: date) -> PortfolioSummary:
        loans = self.loan_manager.load_all_loans()
        summary = aggregate(
            loans,
            self.payment_manager.load_all_payments(),
            as_of,
            horizon_months=self.config.projection_horizon_months,
            **self._engine_options()
        )
        log_action(logger, "debug", "Aggregated portfolio",
                   action="portfolio_summary",
                   extra={"as_of": as_of.isoformat(), "loans": len(loans),
                          "overdue_count": summary.overdue_count})
        return summary

    def installments_for_month(self, year: int, month: int, as_of: date) -> List[Installment]:
        return installments_for_month(
            self.loan_manager.load_all_loans(),
            self.payment_manager.load_all_payments(),
            year, month, as_of,
            **self._engine_options()
        )

    def loan_installments(
        self,
        loan_id: str,
        start: date,
        end: date,
        as_of: date
    ) -> List[Installment]:
        """Installments of one loan inside the inclusive window"""
        loan = self.loan_manager.require_loan(loan_id)
        return installments_within(
            [loan], self.payment_manager.payments_for_loan(loan_id), start, end, as_of,
            **self._engine_options()
        )

    def upcoming_installments(self, as_of: date, days: Optional[int] = None) -> List[Installment]:
        """Installments due from as_of through the next `days` days"""
        days = self.config.upcoming_window_days if days is None else days
        return installments_within(
            self.loan_manager.load_all_loans(),
            self.payment_manager.load_all_payments(),
            as_of, as_of + timedelta(days=days), as_of,
            **self._engine_options()
        )

    def month_overview(self, year: int, month: int, as_of: date) -> MonthOverview:
        return month_overview(self.installments_for_month(year, month, as_of))

    def distribution_report(self, year: int, month: int, as_of: date) -> str:
        report = distribution_report(self.installments_for_month(year, month, as_of), year, month)
        logger.debug("Built distribution report for %04d-%02d", year, month)
        return report

    def close(self) -> None:
        self.storage.close()
