from datetime import datetime
from ..extensions import db


class SalaryTransaction(db.Model):
    __tablename__ = "salary_transaction"

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    staff_name = db.Column(db.String(128), default="")
    staff_role = db.Column(db.String(32), default="")
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    type = db.Column(db.String(32), default="Regular")  # Regular|Repayment|Fine|Bonus|Extra_Payment|Overtime|...
    notes = db.Column(db.Text, default="")
    date = db.Column(db.DateTime, nullable=False, index=True)
    processed_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    processed_by_name = db.Column(db.String(128), default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class SalarySetting(db.Model):
    __tablename__ = "salary_setting"

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True)
    staff_name = db.Column(db.String(128), default="")
    staff_role = db.Column(db.String(32), default="")
    monthly_salary = db.Column(db.Numeric(12, 2), default=0)
    effective_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
