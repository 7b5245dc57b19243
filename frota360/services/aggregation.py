"""
Reconciles raw platform rows (Uber, Bolt, myPRIO, ViaVerde) against driver
identity keys and aggregates them into one entry per platform reference.
"""
import math
import re
import time
import logging

logger = logging.getLogger(__name__)

# Candidate column names per field, first match wins
UBER_COLUMNS = {
    'identity': ['UUID do motorista', 'UUID', 'Driver UUID', 'driver_uuid', 'UUID Motorista'],
    'amount': ['Pago a si', 'Pago a si (€)', 'Paid to you', 'Net amount', 'Net earnings'],
    'trips': ['Viagens', 'Trips', 'Viagens (total)'],
    'name': ['Nome do motorista', 'Driver name', 'Motorista'],
}
BOLT_COLUMNS = {
    'identity': ['Email', 'Driver email', 'Email do motorista'],
    'amount': ['Ganhos brutos (total)|€', 'Ganhos brutos (total)', 'Total Earnings', 'Ganhos brutos (€)'],
    'trips': ['Viagens (total)', 'Viagens', 'Trips'],
    'name': ['Motorista', 'Driver', 'Nome do motorista'],
}
MYPRIO_COLUMNS = {
    'card': ['CARTAO', 'CARTÃO', 'Cartão', 'Card', 'CARD'],
    'plate': ['DESC CARTAO', 'Matrícula', 'MATRICULA', 'Matricula', 'License plate',
              'Licence plate', 'Placa', 'PLACA'],
    'amount': ['TOTAL', 'Total', 'Valor', 'Valor Total', 'TOTAL (EUR)'],
}
VIAVERDE_COLUMNS = {
    'plate': ['Matrícula', 'MATRICULA', 'Matricula', 'Matricula ', 'License Plate',
              'Licence Plate', 'PLACA', 'Placa'],
    'tag': ['OBU', 'Tag', 'Transponder'],
    'amount': ['Value', 'Valor', 'TOTAL', 'Total'],
}


def parse_number(value):
    """Parse amounts like '1.234,56 €', '1,234.56' or 12.5. Garbage is 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if value is None:
        return 0.0
    text = str(value).strip()
    if not text:
        return 0.0
    text = re.sub(r'\s', '', text).replace('€', '').replace('$', '')
    # The right-most separator is the decimal one
    if ',' in text and text.rfind(',') > text.rfind('.'):
        text = text.replace('.', '').replace(',', '.')
    else:
        text = text.replace(',', '')
    try:
        parsed = float(text)
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def parse_integer(value):
    return int(round(parse_number(value)))


def normalize_key(value):
    if value is None:
        return ''
    return str(value).strip().lower()


def normalize_plate(value):
    if value is None:
        return ''
    return re.sub(r'[^A-Z0-9]', '', str(value).strip().upper())


def extract_first_available(row, keys):
    if not row:
        return None
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, float) and math.isnan(value):
            continue
        if str(value).strip() != '':
            return value
    return None


def build_data_weekly_key(week_id, platform, reference_id):
    """e.g. ('2025-W43', 'uber', 'ABC 123') -> '2025-W43_uber_abc-123'"""
    sanitized = re.sub(r'[^a-z0-9]+', '-', str(reference_id).strip().lower()).strip('-')
    safe_ref = sanitized or f"ref-{int(time.time() * 1000)}"
    return f"{week_id}_{platform}_{safe_ref}"


class DriverLookup:
    """Maps of normalized identity keys to drivers."""

    def __init__(self, drivers):
        self.by_id = {}
        self.by_uber = {}
        self.by_bolt = {}
        self.by_myprio = {}
        self.by_plate = {}
        self.by_viaverde = {}
        for driver in drivers:
            self.by_id[driver.id] = driver
            if driver.uber_key:
                self.by_uber[normalize_key(driver.uber_key)] = driver
            bolt_key = driver.bolt_key or driver.email
            if bolt_key:
                self.by_bolt[normalize_key(bolt_key)] = driver
            if driver.myprio_key:
                self.by_myprio[normalize_key(driver.myprio_key)] = driver
            plate = driver.vehicle_plate or driver.viaverde_key
            if plate:
                self.by_plate[normalize_plate(plate)] = driver
            if driver.viaverde_key:
                self.by_viaverde[normalize_key(driver.viaverde_key)] = driver

    def resolve(self, platform, reference_id, driver_id=None, plate=None):
        """Driver for a normalized line: by id, then platform key, then plate."""
        if driver_id and driver_id in self.by_id:
            return self.by_id[driver_id]
        key = normalize_key(reference_id)
        platform_map = {
            'uber': self.by_uber,
            'bolt': self.by_bolt,
            'myprio': self.by_myprio,
            'viaverde': self.by_viaverde,
        }.get(platform, {})
        if key and key in platform_map:
            return platform_map[key]
        for candidate in (plate, reference_id):
            normalized = normalize_plate(candidate)
            if normalized and normalized in self.by_plate:
                return self.by_plate[normalized]
        return None


def _text_or(value, fallback):
    if isinstance(value, str):
        return value.strip()
    return fallback if value is None else str(value).strip()


def _new_entry(reference_id, reference_label, driver):
    return {
        'reference_id': reference_id,
        'reference_label': reference_label,
        'total_value': 0.0,
        'total_trips': 0,
        'driver': driver,
    }


def _aggregate_earnings(rows, columns, driver_map, row_warning, unmapped_label):
    aggregates = {}
    warnings = []
    for index, row in enumerate(rows):
        identity_raw = extract_first_available(row, columns['identity'])
        key = normalize_key(identity_raw)
        if not key:
            warnings.append(f"Linha {index + 2}: {row_warning}")
            continue
        name_raw = extract_first_available(row, columns['name'])
        entry = aggregates.get(key)
        if entry is None:
            entry = _new_entry(_text_or(identity_raw, key), _text_or(name_raw, None), driver_map.get(key))
            aggregates[key] = entry
        entry['total_value'] += parse_number(extract_first_available(row, columns['amount']))
        entry['total_trips'] += parse_integer(extract_first_available(row, columns['trips']))

    entries = list(aggregates.values())
    for entry in entries:
        if entry['driver'] is None:
            warnings.append(f"{unmapped_label} ({entry['reference_id']}).")
    return entries, warnings


def aggregate_uber(rows, lookup):
    return _aggregate_earnings(
        rows, UBER_COLUMNS, lookup.by_uber,
        'motorista sem UUID identificado.', 'Motorista Uber não mapeado'
    )


def aggregate_bolt(rows, lookup):
    return _aggregate_earnings(
        rows, BOLT_COLUMNS, lookup.by_bolt,
        'motorista Bolt sem e-mail.', 'Motorista Bolt não mapeado'
    )


def _aggregate_expenses(rows, primary_cols, secondary_cols, amount_cols, resolve,
                        primary_normalizer, secondary_normalizer, plate_is_primary,
                        row_warning, unmapped_label):
    aggregates = {}
    warnings = []
    for index, row in enumerate(rows):
        primary_raw = extract_first_available(row, primary_cols)
        secondary_raw = extract_first_available(row, secondary_cols)
        primary = primary_normalizer(primary_raw)
        secondary = secondary_normalizer(secondary_raw)
        identifier = primary or secondary
        if not identifier:
            warnings.append(f"Linha {index + 2}: {row_warning}")
            continue
        entry = aggregates.get(identifier)
        if entry is None:
            raw = primary_raw if primary else secondary_raw
            entry = _new_entry(_text_or(raw, identifier), None, None)
            aggregates[identifier] = entry
        if entry['reference_label'] is None:
            plate_raw = primary_raw if plate_is_primary else secondary_raw
            entry['reference_label'] = _text_or(plate_raw, None)
        if entry['driver'] is None:
            entry['driver'] = resolve(primary, secondary)
        entry['total_value'] += parse_number(extract_first_available(row, amount_cols))

    entries = list(aggregates.values())
    for entry in entries:
        if entry['driver'] is None:
            warnings.append(f"{unmapped_label} ({entry['reference_id']}).")
    return entries, warnings


def aggregate_myprio(rows, lookup):
    def resolve(card, plate):
        return (card and lookup.by_myprio.get(card)) or (plate and lookup.by_plate.get(plate)) or None

    return _aggregate_expenses(
        rows, MYPRIO_COLUMNS['card'], MYPRIO_COLUMNS['plate'], MYPRIO_COLUMNS['amount'], resolve,
        normalize_key, normalize_plate, False,
        'lançamento PRIO sem cartão ou matrícula.', 'Despesa PRIO não mapeada'
    )


def aggregate_viaverde(rows, lookup):
    def resolve(plate, tag):
        return (plate and lookup.by_plate.get(plate)) or (tag and lookup.by_viaverde.get(tag)) or None

    return _aggregate_expenses(
        rows, VIAVERDE_COLUMNS['plate'], VIAVERDE_COLUMNS['tag'], VIAVERDE_COLUMNS['amount'], resolve,
        normalize_plate, normalize_key, True,
        'lançamento ViaVerde sem matrícula ou TAG.', 'Portagem ViaVerde não mapeada'
    )


AGGREGATORS = {
    'uber': aggregate_uber,
    'bolt': aggregate_bolt,
    'myprio': aggregate_myprio,
    'viaverde': aggregate_viaverde,
}


def aggregate_platform_rows(platform, rows, lookup):
    """
    Aggregate raw rows of one platform file.

    Returns:
        (entries, warnings) where each entry has reference_id, reference_label,
        total_value, total_trips and the matched driver (or None)
    """
    aggregator = AGGREGATORS.get(platform)
    if aggregator is None:
        return [], []
    entries, warnings = aggregator(rows or [], lookup)
    for entry in entries:
        entry['total_value'] = round(entry['total_value'], 2)
    logger.debug(f"Aggregated {len(rows or [])} {platform} rows into {len(entries)} entries")
    return entries, warnings


def consolidate_entries(entries):
    """Merge lines sharing a data key, summing values and trips."""
    merged = {}
    for entry in entries:
        existing = merged.get(entry['data_key'])
        if existing is None:
            merged[entry['data_key']] = dict(entry, raw_data_ref=list(entry.get('raw_data_ref') or []))
            continue
        existing['total_value'] = round(existing['total_value'] + entry['total_value'], 2)
        existing['total_trips'] += entry['total_trips']
        for ref in entry.get('raw_data_ref') or []:
            if ref not in existing['raw_data_ref']:
                existing['raw_data_ref'].append(ref)
        if existing.get('driver_id') is None and entry.get('driver_id') is not None:
            existing['driver_id'] = entry['driver_id']
            existing['driver_name'] = entry.get('driver_name')
            existing['vehicle_plate'] = entry.get('vehicle_plate')
    return list(merged.values())
