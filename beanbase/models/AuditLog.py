import json
from datetime import datetime, timezone
from beanbase.extensions import db


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    event = db.Column(db.String(64), nullable=False, index=True)
    actor_id = db.Column(db.String(64), nullable=True)
    bean_type = db.Column(db.String(64), nullable=True)
    bean_id = db.Column(db.Integer, nullable=True)
    detail = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'event': self.event,
            'actor_id': self.actor_id,
            'bean_type': self.bean_type,
            'bean_id': self.bean_id,
            'detail': self.detail,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    @staticmethod
    def validate_detail_format(detail):
        """
        Normalise ``detail`` for storage: objects become JSON strings, strings
        are kept as they are.
        """
        if detail is None or isinstance(detail, str):
            return detail
        try:
            return json.dumps(detail, default=str)
        except (TypeError, ValueError):
            return str(detail)
