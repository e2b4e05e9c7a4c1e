"""
Database configuration and models for the longevity forecaster.

Stores projection summaries keyed by user and run time, and the per-user
assumptions the nightly batch reads before simulating.
"""

from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL
from models import EstateBracket, MortalityProfile, ProjectionSummary

# Base class for SQLAlchemy models
Base = declarative_base()


class ProjectionRunRow(Base):
    """One persisted projection summary"""
    __tablename__ = "projection_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), index=True, nullable=False)
    run_at = Column(DateTime(timezone=True), index=True, nullable=False)
    success_rate = Column(Float, nullable=False)
    longevity_risk_score = Column(Float, nullable=False)
    expected_death_age = Column(Integer, nullable=False)
    breach_year = Column(Integer, nullable=True)
    payload = Column(Text, nullable=False)  # JSON string of ProjectionSummary


class MortalityAssumptionRow(Base):
    """User-supplied mortality settings"""
    __tablename__ = "mortality_assumptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), unique=True, nullable=False)
    current_age = Column(Integer, nullable=False)
    health_multiplier = Column(Float, nullable=False, default=1.0)


class EstateBracketRow(Base):
    """Jurisdiction estate tax bracket assigned to a user"""
    __tablename__ = "estate_brackets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), unique=True, nullable=False)
    exemption_threshold = Column(Float, nullable=False)
    tax_rate_percentage = Column(Float, nullable=False)


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine, making the data directory for file-backed SQLite."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url)

    if parsed.database in (None, "", ":memory:"):
        # One shared connection so every thread sees the same in-memory DB
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args={"check_same_thread": False})


class ResultsStore:
    """Reads household assumptions and writes projection summaries."""

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine if engine is not None else make_engine()
        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        """Get a new database session"""
        return Session(self.engine)

    # ============================
    # Projection runs
    # ============================
    def save_summary(self, summary: ProjectionSummary) -> int:
        """Persist a summary and return its row id."""
        with self.session() as s:
            row = ProjectionRunRow(
                user_id=summary.user_id,
                run_at=summary.run_at,
                success_rate=summary.risk.success_rate,
                longevity_risk_score=summary.risk.longevity_risk_score,
                expected_death_age=summary.risk.expected_death_age,
                breach_year=summary.estate.breach_year,
                payload=summary.model_dump_json(),
            )
            s.add(row)
            s.commit()
            return row.id

    def list_runs(self, user_id: str) -> List[Dict]:
        with self.session() as s:
            rows = (
                s.query(ProjectionRunRow)
                .filter_by(user_id=user_id)
                .order_by(ProjectionRunRow.run_at.desc(), ProjectionRunRow.id.desc())
                .all()
            )
            return [
                {
                    "id": r.id,
                    "run_at": r.run_at.isoformat(),
                    "success_rate": r.success_rate,
                    "longevity_risk_score": r.longevity_risk_score,
                    "breach_year": r.breach_year,
                }
                for r in rows
            ]

    def latest_summary(self, user_id: str) -> Optional[ProjectionSummary]:
        with self.session() as s:
            row = (
                s.query(ProjectionRunRow)
                .filter_by(user_id=user_id)
                .order_by(ProjectionRunRow.run_at.desc(), ProjectionRunRow.id.desc())
                .first()
            )
            if row is None:
                return None
            return ProjectionSummary.model_validate_json(row.payload)

    # ============================
    # Upstream assumptions
    # ============================
    def load_mortality_profile(self, user_id: str) -> Optional[MortalityProfile]:
        with self.session() as s:
            row = s.query(MortalityAssumptionRow).filter_by(user_id=user_id).first()
            if row is None:
                return None
            return MortalityProfile(
                current_age=row.current_age,
                health_multiplier=row.health_multiplier,
            )

    def set_mortality_assumption(self, user_id: str, profile: MortalityProfile) -> None:
        with self.session() as s:
            # upsert by user
            row = s.query(MortalityAssumptionRow).filter_by(user_id=user_id).first()
            if row is None:
                row = MortalityAssumptionRow(user_id=user_id)
                s.add(row)
            row.current_age = profile.current_age
            row.health_multiplier = profile.health_multiplier
            s.commit()

    def load_estate_bracket(self, user_id: str) -> Optional[EstateBracket]:
        with self.session() as s:
            row = s.query(EstateBracketRow).filter_by(user_id=user_id).first()
            if row is None:
                return None
            return EstateBracket(
                exemption_threshold=row.exemption_threshold,
                tax_rate_percentage=row.tax_rate_percentage,
            )

    def set_estate_bracket(self, user_id: str, bracket: EstateBracket) -> None:
        with self.session() as s:
            row = s.query(EstateBracketRow).filter_by(user_id=user_id).first()
            if row is None:
                row = EstateBracketRow(user_id=user_id)
                s.add(row)
            row.exemption_threshold = bracket.exemption_threshold
            row.tax_rate_percentage = bracket.tax_rate_percentage
            s.commit()
