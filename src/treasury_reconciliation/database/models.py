'''
ORM mappings for the treasury tables the ledger provider reads.
The engine never writes to any of them.
'''
from typing import Optional

from sqlalchemy import BigInteger, Date, Numeric, PrimaryKeyConstraint, SmallInteger, String, Text, Uuid, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import datetime
import decimal
import uuid

class Base(DeclarativeBase):
    pass


class Students(Base):
    __tablename__ = 'students'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='students_pkey'),
        Index('idx_students_tenant', 'tenant_id'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    enrollment_date: Mapped[datetime.date] = mapped_column(Date)
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)


class Activities(Base):
    __tablename__ = 'activities'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='activities_pkey'),
        Index('idx_activities_tenant', 'tenant_id'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(Text)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    activity_date: Mapped[Optional[datetime.date]] = mapped_column(Date)


class ActivityExclusions(Base):
    __tablename__ = 'activity_exclusions'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='activity_exclusions_pkey'),
        Index('idx_activity_exclusions_tenant', 'tenant_id'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[int] = mapped_column(BigInteger)
    activity_id: Mapped[int] = mapped_column(BigInteger)


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='payments_pkey'),
        Index('idx_payments_tenant', 'tenant_id'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    folio: Mapped[int] = mapped_column(BigInteger)
    payment_date: Mapped[datetime.date] = mapped_column(Date)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    concept: Mapped[Optional[str]] = mapped_column(Text)
    student_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    activity_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    month_period: Mapped[Optional[str]] = mapped_column(Text)


class StudentCredits(Base):
    __tablename__ = 'student_credits'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='student_credits_pkey'),
        Index('idx_student_credits_tenant', 'tenant_id'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[int] = mapped_column(BigInteger)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))


class CreditMovements(Base):
    __tablename__ = 'credit_movements'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='credit_movements_pkey'),
        Index('idx_credit_movements_tenant', 'tenant_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[int] = mapped_column(BigInteger)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    type: Mapped[str] = mapped_column(String(32))
    description: Mapped[str] = mapped_column(Text, default='')
    source_payment_id: Mapped[Optional[int]] = mapped_column(BigInteger)


class RecurringDueSchedules(Base):
    __tablename__ = 'recurring_due_schedules'
    __table_args__ = (
        PrimaryKeyConstraint('tenant_id', name='recurring_due_schedules_pkey'),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    period_unit: Mapped[str] = mapped_column(String(16), default='month')
    amount_per_period: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    first_period: Mapped[int] = mapped_column(SmallInteger)
    last_period: Mapped[int] = mapped_column(SmallInteger)
    cutoff_policy: Mapped[str] = mapped_column(String(32), default='current_period')
