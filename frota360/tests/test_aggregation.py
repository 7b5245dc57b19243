from types import SimpleNamespace

from frota360.services.aggregation import (
    DriverLookup,
    aggregate_platform_rows,
    build_data_weekly_key,
    consolidate_entries,
    normalize_plate,
    parse_number,
)


def driver(id, **kwargs):
    params = dict(id=id, name=f"Driver {id}", email=None, uber_key=None, bolt_key=None,
                  myprio_key=None, vehicle_plate=None, viaverde_key=None)
    params.update(kwargs)
    return SimpleNamespace(**params)


class TestParsing:
    def test_parse_number_formats(self):
        assert parse_number('1.234,56 €') == 1234.56
        assert parse_number('1,234.56') == 1234.56
        assert parse_number('12,5') == 12.5
        assert parse_number(7) == 7.0
        assert parse_number('abc') == 0.0
        assert parse_number(None) == 0.0
        assert parse_number(float('nan')) == 0.0

    def test_normalize_plate_strips_separators(self):
        assert normalize_plate(' aa-12-bb ') == 'AA12BB'
        assert normalize_plate(None) == ''

    def test_build_data_weekly_key_sanitizes_reference(self):
        assert build_data_weekly_key('2025-W43', 'uber', 'ABC 123') == '2025-W43_uber_abc-123'
        assert build_data_weekly_key('2025-W43', 'bolt', 'Ana@Mail.pt') == '2025-W43_bolt_ana-mail-pt'


class TestAggregation:
    def test_uber_rows_are_summed_per_uuid(self):
        lookup = DriverLookup([driver(1, uber_key='UUID-1')])
        rows = [
            {'UUID do motorista': 'uuid-1', 'Pago a si': '100,50', 'Viagens': 10, 'Nome do motorista': 'Ana'},
            {'UUID do motorista': 'UUID-1', 'Pago a si': '20', 'Viagens': '5'},
            {'UUID do motorista': 'other', 'Pago a si': '5'},
        ]
        entries, warnings = aggregate_platform_rows('uber', rows, lookup)
        by_ref = {e['reference_id'].lower(): e for e in entries}
        assert by_ref['uuid-1']['total_value'] == 120.5
        assert by_ref['uuid-1']['total_trips'] == 15
        assert by_ref['uuid-1']['driver'].id == 1
        assert by_ref['other']['driver'] is None
        assert any('não mapeado' in w for w in warnings)

    def test_rows_without_identity_produce_warning(self):
        lookup = DriverLookup([])
        entries, warnings = aggregate_platform_rows('bolt', [{'Ganhos brutos (total)': '10'}], lookup)
        assert entries == []
        assert warnings == ['Linha 2: motorista Bolt sem e-mail.']

    def test_bolt_falls_back_to_driver_email(self):
        lookup = DriverLookup([driver(2, email='Rui@conduz.pt')])
        entries, _ = aggregate_platform_rows('bolt', [{'Email': 'rui@conduz.pt', 'Ganhos brutos (total)': '50'}], lookup)
        assert entries[0]['driver'].id == 2

    def test_myprio_matches_card_then_plate(self):
        lookup = DriverLookup([driver(1, myprio_key='C1'), driver(2, vehicle_plate='AA-00-BB')])
        rows = [
            {'CARTAO': 'c1', 'TOTAL': '40'},
            {'DESC CARTAO': 'aa00bb', 'TOTAL': '10'},
        ]
        entries, warnings = aggregate_platform_rows('myprio', rows, lookup)
        drivers = sorted(e['driver'].id for e in entries)
        assert drivers == [1, 2]
        assert warnings == []

    def test_viaverde_matches_plate(self):
        lookup = DriverLookup([driver(3, vehicle_plate='11-AA-22')])
        rows = [{'Matrícula': '11AA22', 'Value': '3,20'}, {'Matrícula': '11-aa-22', 'Value': '1,80'}]
        entries, _ = aggregate_platform_rows('viaverde', rows, lookup)
        assert len(entries) == 1
        assert entries[0]['total_value'] == 5.0
        assert entries[0]['reference_label'] == '11AA22'

    def test_unknown_platform_is_empty(self):
        assert aggregate_platform_rows('freenow', [{'a': 1}], DriverLookup([])) == ([], [])


class TestLookup:
    def test_resolve_prefers_explicit_driver_id(self):
        lookup = DriverLookup([driver(1, uber_key='u1'), driver(2, uber_key='u2')])
        assert lookup.resolve('uber', 'u2', driver_id=1).id == 1
        assert lookup.resolve('uber', 'U2').id == 2
        assert lookup.resolve('uber', 'missing') is None

    def test_resolve_falls_back_to_plate(self):
        lookup = DriverLookup([driver(5, vehicle_plate='AB-12-CD')])
        assert lookup.resolve('viaverde', 'tag-x', plate='ab12cd').id == 5


def test_consolidate_entries_merges_duplicate_keys():
    entries = [
        {'data_key': 'k', 'total_value': 10.0, 'total_trips': 2, 'raw_data_ref': ['a'], 'driver_id': None},
        {'data_key': 'k', 'total_value': 5.25, 'total_trips': 1, 'raw_data_ref': ['b'], 'driver_id': 3,
         'driver_name': 'Rui', 'vehicle_plate': 'AA'},
        {'data_key': 'j', 'total_value': 1.0, 'total_trips': 0, 'raw_data_ref': ['a'], 'driver_id': None},
    ]
    merged = {e['data_key']: e for e in consolidate_entries(entries)}
    assert merged['k']['total_value'] == 15.25
    assert merged['k']['total_trips'] == 3
    assert merged['k']['raw_data_ref'] == ['a', 'b']
    assert merged['k']['driver_id'] == 3
    assert len(merged) == 2
