import sys
import uuid

import config
from db import fetch_maintenance, init_db


def dump(equipment_id=None, db_path=config.DB_PATH):
    init_db(db_path)
    records = fetch_maintenance(db_path, equipment_id=equipment_id)
    if not records:
        print('No maintenance records for', equipment_id or 'any equipment')
        return
    for r in records:
        print(r.model_dump(mode='json'))

if __name__ == '__main__':
    equipment = uuid.UUID(sys.argv[1]) if len(sys.argv) > 1 else None
    dump(equipment)
