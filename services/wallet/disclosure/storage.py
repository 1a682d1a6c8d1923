import json
from typing import Dict, List, Optional

import redis as _redis
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from disclosure.models import Account
from disclosure.utils import now_ms

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
  address TEXT PRIMARY KEY,
  parent TEXT,
  network TEXT,
  client_id TEXT,
  signer_type TEXT,
  authorized_clients TEXT NOT NULL DEFAULT '[]',
  enc_key TEXT,
  published INTEGER NOT NULL DEFAULT 0,
  created_at BIGINT NOT NULL
);
CREATE TABLE IF NOT EXISTS wallet_state (
  key TEXT PRIMARY KEY,
  value TEXT
);
CREATE TABLE IF NOT EXISTS activities (
  id TEXT PRIMARY KEY,
  client_id TEXT,
  data TEXT NOT NULL DEFAULT '{}',
  error TEXT,
  authorized_at BIGINT,
  created_at BIGINT NOT NULL
);
CREATE TABLE IF NOT EXISTS interaction_stats (
  subject TEXT NOT NULL,
  counterpart TEXT NOT NULL,
  kind TEXT NOT NULL,
  count INTEGER NOT NULL,
  last_at BIGINT NOT NULL,
  PRIMARY KEY (subject, counterpart, kind)
);
CREATE TABLE IF NOT EXISTS connections (
  subject TEXT NOT NULL,
  connection_type TEXT NOT NULL,
  counterpart TEXT NOT NULL,
  PRIMARY KEY (subject, connection_type, counterpart)
);
CREATE TABLE IF NOT EXISTS claims (
  name TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS attestations (
  token TEXT PRIMARY KEY,
  claim_type TEXT NOT NULL,
  created_at BIGINT NOT NULL
);
CREATE TABLE IF NOT EXISTS external_profiles (
  client_id TEXT PRIMARY KEY,
  name TEXT,
  profile TEXT NOT NULL DEFAULT '{}',
  updated_at BIGINT NOT NULL
)
"""

TABLES = (
    "accounts",
    "wallet_state",
    "activities",
    "interaction_stats",
    "connections",
    "claims",
    "attestations",
    "external_profiles",
)

ACCOUNT_COLUMNS = "address, parent, network, client_id, signer_type, authorized_clients"


def init_db(settings):
    engine = create_engine(settings.db_dsn, pool_pre_ping=True)
    with engine.begin() as conn:
        for stmt in SCHEMA_SQL.split(";"):
            sql = stmt.strip()
            if sql:
                conn.execute(text(sql))
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return engine, Session


def init_redis(settings):
    return _redis.Redis.from_url(settings.redis_url, decode_responses=True)


def _map_account(row) -> Account:
    return Account(
        address=row[0],
        parent=row[1],
        network=row[2],
        client_id=row[3],
        signer_type=row[4],
        authorized_clients=json.loads(row[5] or "[]"),
    )


def save_account(Session, account: Account, enc_key: Optional[str] = None, published: bool = False):
    with Session.begin() as session:
        session.execute(
            text(
                "INSERT INTO accounts "
                "(address,parent,network,client_id,signer_type,authorized_clients,enc_key,published,created_at) "
                "VALUES (:a,:p,:n,:c,:s,:ac,:ek,:pub,:ts) "
                "ON CONFLICT (address) DO UPDATE SET parent=EXCLUDED.parent, network=EXCLUDED.network, "
                "client_id=EXCLUDED.client_id, signer_type=EXCLUDED.signer_type, "
                "authorized_clients=EXCLUDED.authorized_clients"
            ),
            {
                "a": account.address,
                "p": account.parent,
                "n": account.network,
                "c": account.client_id,
                "s": account.signer_type,
                "ac": json.dumps(account.authorized_clients),
                "ek": enc_key,
                "pub": 1 if published else 0,
                "ts": now_ms(),
            },
        )


def get_account(Session, address: str) -> Optional[Account]:
    with Session() as session:
        row = session.execute(
            text(f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE address=:a"), {"a": address}
        ).first()
        return _map_account(row) if row else None


def list_accounts_for_network(Session, network: str) -> List[Account]:
    with Session() as session:
        rows = session.execute(
            text(
                f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE LOWER(network)=LOWER(:n) "
                "ORDER BY created_at, address"
            ),
            {"n": network},
        ).all()
        return [_map_account(row) for row in rows]


def find_account(Session, network: str, client_id: str, signer_type: str) -> Optional[Account]:
    with Session() as session:
        row = session.execute(
            text(
                f"SELECT {ACCOUNT_COLUMNS} FROM accounts "
                "WHERE LOWER(network)=LOWER(:n) AND client_id=:c AND signer_type=:s "
                "ORDER BY created_at, address LIMIT 1"
            ),
            {"n": network, "c": client_id, "s": signer_type},
        ).first()
        return _map_account(row) if row else None


def get_account_flags(Session, address: str):
    with Session() as session:
        row = session.execute(
            text("SELECT enc_key, published FROM accounts WHERE address=:a"), {"a": address}
        ).first()
        if not row:
            return None, False
        return row[0], bool(row[1])


def mark_published(Session, address: str):
    with Session.begin() as session:
        session.execute(text("UPDATE accounts SET published=1 WHERE address=:a"), {"a": address})


def get_state(Session, key: str) -> Optional[str]:
    with Session() as session:
        return session.execute(
            text("SELECT value FROM wallet_state WHERE key=:k"), {"k": key}
        ).scalar()


def set_state(Session, key: str, value: Optional[str]):
    with Session.begin() as session:
        session.execute(
            text(
                "INSERT INTO wallet_state (key,value) VALUES (:k,:v) "
                "ON CONFLICT (key) DO UPDATE SET value=EXCLUDED.value"
            ),
            {"k": key, "v": value},
        )


def create_activity(Session, activity_id: str, client_id: Optional[str] = None):
    with Session.begin() as session:
        session.execute(
            text("INSERT INTO activities (id,client_id,created_at) VALUES (:id,:c,:ts)"),
            {"id": activity_id, "c": client_id, "ts": now_ms()},
        )


def update_activity(Session, activity_id: str, fields: Dict[str, object]):
    with Session.begin() as session:
        row = session.execute(
            text("SELECT data FROM activities WHERE id=:id"), {"id": activity_id}
        ).first()
        if not row:
            session.execute(
                text("INSERT INTO activities (id,created_at) VALUES (:id,:ts)"),
                {"id": activity_id, "ts": now_ms()},
            )
        data = json.loads(row[0]) if row else {}
        data.update(fields)
        session.execute(
            text(
                "UPDATE activities SET data=:d, error=:e, authorized_at=:at, "
                "client_id=COALESCE(:c, client_id) WHERE id=:id"
            ),
            {
                "d": json.dumps(data),
                "e": data.get("error"),
                "at": data.get("authorizedAt"),
                "c": data.get("client_id"),
                "id": activity_id,
            },
        )


def get_activity(Session, activity_id: str):
    with Session() as session:
        row = session.execute(
            text("SELECT id, client_id, data, error, authorized_at FROM activities WHERE id=:id"),
            {"id": activity_id},
        ).first()
        if not row:
            return None
        return {
            "id": row[0],
            "client_id": row[1],
            "data": json.loads(row[2]),
            "error": row[3],
            "authorized_at": row[4],
        }


def bump_interaction_stat(Session, subject: str, counterpart: str, kind: str):
    with Session.begin() as session:
        session.execute(
            text(
                "INSERT INTO interaction_stats (subject,counterpart,kind,count,last_at) "
                "VALUES (:s,:c,:k,1,:ts) "
                "ON CONFLICT (subject,counterpart,kind) DO UPDATE SET "
                "count=interaction_stats.count + 1, last_at=EXCLUDED.last_at"
            ),
            {"s": subject, "c": counterpart, "k": kind, "ts": now_ms()},
        )


def get_interaction_stat(Session, subject: str, counterpart: str, kind: str) -> int:
    with Session() as session:
        value = session.execute(
            text(
                "SELECT count FROM interaction_stats "
                "WHERE subject=:s AND counterpart=:c AND kind=:k"
            ),
            {"s": subject, "c": counterpart, "k": kind},
        ).scalar()
        return value or 0


def save_connection(Session, subject: str, connection_type: str, counterpart: str):
    with Session.begin() as session:
        session.execute(
            text(
                "INSERT INTO connections (subject,connection_type,counterpart) "
                "VALUES (:s,:t,:c) ON CONFLICT DO NOTHING"
            ),
            {"s": subject, "t": connection_type, "c": counterpart},
        )


def list_connections(Session, subject: str, connection_type: str) -> List[str]:
    with Session() as session:
        rows = session.execute(
            text(
                "SELECT counterpart FROM connections WHERE subject=:s AND connection_type=:t "
                "ORDER BY counterpart"
            ),
            {"s": subject, "t": connection_type},
        ).all()
        return [row[0] for row in rows]


def save_claims(Session, claims: Dict[str, object]):
    with Session.begin() as session:
        for name, value in claims.items():
            session.execute(
                text(
                    "INSERT INTO claims (name,value) VALUES (:n,:v) "
                    "ON CONFLICT (name) DO UPDATE SET value=EXCLUDED.value"
                ),
                {"n": name, "v": json.dumps(value)},
            )


def get_claims(Session, names: List[str]) -> Dict[str, object]:
    if not names:
        return {}
    with Session() as session:
        rows = session.execute(text("SELECT name, value FROM claims")).all()
    stored = {row[0]: json.loads(row[1]) for row in rows}
    return {name: stored[name] for name in names if name in stored}


def save_attestation(Session, claim_type: str, token: str):
    with Session.begin() as session:
        session.execute(
            text(
                "INSERT INTO attestations (token,claim_type,created_at) VALUES (:t,:c,:ts) "
                "ON CONFLICT DO NOTHING"
            ),
            {"t": token, "c": claim_type, "ts": now_ms()},
        )


def get_attestations(Session, claim_types: List[str]) -> List[str]:
    if not claim_types:
        return []
    with Session() as session:
        rows = session.execute(
            text("SELECT token, claim_type FROM attestations ORDER BY created_at, token")
        ).all()
    return [row[0] for row in rows if row[1] in claim_types]


def save_profile(Session, client_id: str, name: Optional[str], profile: Dict[str, object]):
    with Session.begin() as session:
        session.execute(
            text(
                "INSERT INTO external_profiles (client_id,name,profile,updated_at) "
                "VALUES (:c,:n,:p,:ts) "
                "ON CONFLICT (client_id) DO UPDATE SET name=EXCLUDED.name, "
                "profile=EXCLUDED.profile, updated_at=EXCLUDED.updated_at"
            ),
            {"c": client_id, "n": name, "p": json.dumps(profile), "ts": now_ms()},
        )


def get_profile(Session, client_id: str):
    with Session() as session:
        row = session.execute(
            text("SELECT name, profile FROM external_profiles WHERE client_id=:c"),
            {"c": client_id},
        ).first()
        if not row:
            return None
        return {"name": row[0], **json.loads(row[1])}


def reset_state(Session):
    with Session.begin() as session:
        for table in TABLES:
            session.execute(text(f"DELETE FROM {table}"))


def health_check(engine):
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
