from marshmallow_sqlalchemy import SQLAlchemyAutoSchema
from marshmallow_sqlalchemy import fields as ma_fields
from frota360.models.week import Week, WeeklyDataSource

class WeeklyDataSourceSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = WeeklyDataSource
        exclude = ('id',)

class WeekSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = Week
    data_sources = ma_fields.Nested(WeeklyDataSourceSchema, many=True, dump_only=True)
