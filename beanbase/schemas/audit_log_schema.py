from marshmallow import fields

from beanbase.models.AuditLog import AuditLog
from beanbase.extensions import ma


class AuditLogSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = AuditLog
        load_instance = True

    id = fields.Integer(dump_only=True)
    event = fields.String(required=True)
    actor_id = fields.String(allow_none=True)
    bean_type = fields.String(allow_none=True)
    bean_id = fields.Integer(allow_none=True)
    detail = fields.String(allow_none=True)
    created_at = fields.DateTime(dump_only=True)
