from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from marshmallow import validate
from frota360.models.contract_template import ContractTemplate
from frota360.models.driver import DRIVER_TYPES

class ContractTemplateSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = ContractTemplate
        load_instance = True
        include_fk = True
    id = auto_field(dump_only=True)
    type = auto_field(validate=validate.OneOf(DRIVER_TYPES))
    version = auto_field(validate=validate.Length(min=1, max=32))
    file_name = auto_field(validate=validate.Length(min=1, max=255))
    uploaded_by = auto_field(dump_only=True)
    uploaded_at = auto_field(dump_only=True)
