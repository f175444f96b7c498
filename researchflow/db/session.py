from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def create_db_engine(db_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # A single shared connection keeps the in-memory database alive
        return create_engine(
            db_url,
            connect_args=connect_args,
            poolclass=StaticPool,
            echo=echo,
        )

    if connect_args:
        return create_engine(
            db_url,
            connect_args=connect_args,
            pool_pre_ping=True,
            echo=echo,
        )

    return create_engine(
        db_url,
        pool_pre_ping=True,
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
