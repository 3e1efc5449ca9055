import logging
import os

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import inspect as sa_inspect

from app.crm.config import load_config
from app.crm.db import ensure_schema, init_db, teardown_db_session
from app.crm.errors import register_error_handlers
from app.crm.models import Base
from app.crm.modules.addresses.api import bp as addresses_bp
from app.crm.modules.customers.api import bp as customers_bp
from app.crm.routes import bp as routes_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False  # keep serialized field order

    init_db(app)
    engine = app.extensions["sqlalchemy_engine"]
    ensure_schema(engine)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(customers_bp, url_prefix="/api/customers")
    app.register_blueprint(addresses_bp, url_prefix="/api/addresses")
    register_error_handlers(app)
    app.teardown_appcontext(teardown_db_session)

    # Schema health: tables that predate a column are not altered by create_all.
    missing: list[str] = []
    insp = sa_inspect(engine)
    for table in Base.metadata.sorted_tables:
        if not insp.has_table(table.name):
            missing.append(f"{table.name} (table)")
            continue
        cols = {c["name"] for c in insp.get_columns(table.name)}
        missing.extend(f"{table.name}.{col.name}" for col in table.columns if col.name not in cols)
    if missing:
        app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
