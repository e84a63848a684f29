import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER", "postgres")
password = os.getenv("DB_PASSWORD", "postgres")
host = os.getenv("DB_HOST", "localhost")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME", "casebros")
# "postgres" in production, "sqlite" for local development
db_backend = os.getenv("DB_BACKEND", "postgres").lower()
sqlite_path = os.getenv("SQLITE_PATH", "casebros.sqlite3")

if __name__ == "__main__":
    print(user, host, port, db_name, db_backend, sqlite_path)
