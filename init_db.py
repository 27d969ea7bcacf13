# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import argparse

from gateway.domain import models  # noqa: F401
from gateway.infra.db import Base, audit_engine, engine, owns_table


def init_db(seed_auth_id: str | None = None) -> None:
    print("Creating tables...")
    for role, bind in (("registry", engine), ("audit", audit_engine)):
        if role == "audit" and audit_engine is engine:
            continue
        tables = [t for t in Base.metadata.sorted_tables if owns_table(role, t.name)]
        Base.metadata.create_all(bind=bind, tables=tables)

    if seed_auth_id:
        from gateway.infra.db import SessionLocal

        with SessionLocal() as db:
            if db.get(models.Game, seed_auth_id) is None:
                db.add(models.Game(id=seed_auth_id, name="local-dev", status=1))
                db.commit()
                print(f"Seeded active auth_id={seed_auth_id}")
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="create gateway tables")
    parser.add_argument("--seed-auth-id", default=None, help="插入一个 active 的 auth_id（本地调试）")
    args = parser.parse_args()
    init_db(args.seed_auth_id)
