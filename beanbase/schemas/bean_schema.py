from marshmallow import fields

from beanbase.models.Bean import Bean
from beanbase.extensions import ma


class BeanSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Bean
        load_instance = False
        exclude = ("bean_type",)

    id = fields.Integer(dump_only=True)
    type = fields.String(attribute="bean_type", required=True)
    properties = fields.Dict(keys=fields.String())
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)
    owned = fields.Method("get_owned", dump_only=True)
    tainted = fields.Method("get_tainted", dump_only=True)

    def get_owned(self, obj):
        """Map each owned collection to the IDs of its members."""
        return {
            bean_type: [member.id for member in members]
            for bean_type, members in obj.owned_collections().items()
        }

    def get_tainted(self, obj):
        return obj.is_tainted
