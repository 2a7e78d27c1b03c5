from sqlalchemy.types import BigInteger, Integer

# BIGINT em MySQL; em SQLite so "INTEGER PRIMARY KEY" faz autoincrement
BigIntPK = BigInteger().with_variant(Integer, "sqlite")
