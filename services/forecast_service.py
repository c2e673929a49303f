from datetime import date, timedelta
from database.recurring_dao import RecurringDAO
from models.projection import ForecastPoint, ForecastSources
from services.projection_service import ProjectionService
from utils.constants import (
    CONFIDENCE_DECAY, FORECAST_DAYS, HISTORY_WINDOW_DAYS,
    MAX_BASE_CONFIDENCE, MIN_BASE_CONFIDENCE, MIN_TIME_DECAY,
)
from utils.date_helpers import days_before
from utils.errors import ValidationError
from utils.money import ZERO


class ForecastService:
    def __init__(self, projection_svc: ProjectionService, recurring_dao: RecurringDAO):
        self._projection_svc = projection_svc
        self._recurring_dao = recurring_dao

    def base_confidence(self, owner_id: int, start: date) -> float:
        """Average accuracy over the trailing history window, clamped to [50, 95]."""
        first, last = days_before(start, HISTORY_WINDOW_DAYS)
        summary = self._projection_svc.get_cash_flow_summary(owner_id, first, last)
        return min(MAX_BASE_CONFIDENCE, max(MIN_BASE_CONFIDENCE, summary.average_accuracy))

    def forecast(self, owner_id: int, start: date, days: int = FORECAST_DAYS) -> list[ForecastPoint]:
        """
        One point per day for `days` days starting at `start`.
        Confidence decays linearly with distance, never below half the base.
        """
        if days < 1:
            raise ValidationError(["Forecast length must be at least 1 day"])

        base = self.base_confidence(owner_id, start)
        end = start + timedelta(days=days - 1)
        records = self._projection_svc.generate_projections(owner_id, start, end, True)

        history = self._projection_svc.get_historical_averages(owner_id, start)
        historical_net = history.daily_income - history.daily_expenses
        definitions = self._recurring_dao.get_filtered(owner_id, is_active=True)

        points = []
        cumulative = ZERO
        for index, record in enumerate(records):
            cumulative += record.projected_balance
            time_decay = max(MIN_TIME_DECAY, 1 - (index / days) * CONFIDENCE_DECAY)
            rec_income, rec_expense = ProjectionService.recurring_totals_on(
                definitions, record.projection_date
            )
            points.append(ForecastPoint(
                date=record.projection_date,
                projected_income=record.projected_income,
                projected_expenses=record.projected_expenses,
                projected_balance=record.projected_balance,
                cumulative_balance=cumulative,
                confidence=base * time_decay,
                sources=ForecastSources(
                    recurring_income=rec_income,
                    recurring_expenses=rec_expense,
                    historical_average=historical_net,
                ),
            ))
        return points
