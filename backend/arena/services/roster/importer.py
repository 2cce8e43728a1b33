import csv
import io
from collections.abc import Mapping

from flask import current_app

from arena import get_coordinator
from arena.models import Participant, ROLE_ADMIN, ROLE_PARTICIPANT
from arena.services.live.ledger import pick_number

REQUIRED_FIELDS = ('name', 'identity', 'password')
# Header spellings accepted from exported spreadsheets
FIELD_ALIASES = {
    'name': ('name', 'full_name', 'fullName'),
    'identity': ('identity', 'sapId', 'sap_id', 'sapid'),
    'password': ('password',),
    'is_girl': ('is_girl', 'isGirl', 'gender'),
    'role': ('role',),
}
GIRL_VALUES = {'1', 'true', 'yes', 'y', 'girl', 'f', 'female'}


def parse_csv(stream):
    """Read an uploaded CSV (bytes or text stream) into a list of row dicts."""
    data = stream.read()
    if isinstance(data, bytes):
        data = data.decode('utf-8-sig')
    return list(csv.DictReader(io.StringIO(data)))


def _field(row, name):
    for key in FIELD_ALIASES[name]:
        value = row.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def normalize_row(row):
    """Return the canonical fields of one row, or None if a required field is missing."""
    values = {name: _field(row, name) for name in FIELD_ALIASES}
    if any(not values[name] for name in REQUIRED_FIELDS):
        return None
    role = (values['role'] or ROLE_PARTICIPANT).lower()
    values['role'] = ROLE_ADMIN if role == ROLE_ADMIN else ROLE_PARTICIPANT
    values['is_girl'] = (values['is_girl'] or '').lower() in GIRL_VALUES
    return values


def import_rows(rows, ledger=None):
    """Register every new participant in ``rows``; return how many were created.

    Rows missing a required field are skipped, as are identities already
    stored or seen earlier in the same batch. Each participant gets a random
    unused display number from the configured range.
    """
    ledger = ledger or get_coordinator().ledger
    config = current_app.config
    low = int(config.get('NUMBER_RANGE_MIN', 1))
    high = int(config.get('NUMBER_RANGE_MAX', 456))
    starting_coins = int(config.get('STARTING_COINS', 1000))

    normalized = []
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            current_app.logger.info(f"[import] row {index + 1} skipped: not a record")
            continue
        values = normalize_row(row)
        if values is None:
            current_app.logger.info(f"[import] row {index + 1} skipped: missing required field")
            continue
        normalized.append(values)

    existing = ledger.existing_identities(v['identity'] for v in normalized)
    used = ledger.used_numbers()
    seen = set()
    created = []
    for values in normalized:
        identity = values['identity']
        if identity in existing or identity in seen:
            current_app.logger.info(f"[import] duplicate identity {identity} skipped")
            continue
        number = None
        if values['role'] == ROLE_PARTICIPANT:
            number = pick_number(used, low, high)
            if number is None:
                current_app.logger.warning(f"[import] no free player numbers left, {identity} skipped")
                continue
            used.add(number)
        seen.add(identity)
        participant = Participant(
            identity=identity,
            name=values['name'],
            role=values['role'],
            is_girl=values['is_girl'],
            assigned_number=number,
            coins=starting_coins,
        )
        participant.set_password(values['password'])
        created.append(participant)

    count = ledger.register_many(created) if created else 0
    current_app.logger.info(f"[import] registered {count} of {len(rows)} rows")
    return count
