from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseEngine(str, Enum):
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"
    MONGODB = "mongodb"
    SYBASE = "sybase"
    SAP_HANA = "saphana"
    SNOWFLAKE = "snowflake"


class IdStrategy(str, Enum):
    UUID4 = "uuid4"
    COUNTER = "counter"


# Default ports used when a credential leaves the port blank
ENGINE_DEFAULT_PORTS = {
    DatabaseEngine.MYSQL: "3306",
    DatabaseEngine.POSTGRESQL: "5432",
    DatabaseEngine.ORACLE: "1521",
    DatabaseEngine.SQLSERVER: "1433",
    DatabaseEngine.MONGODB: "27017",
    DatabaseEngine.SYBASE: "5000",
    DatabaseEngine.SAP_HANA: "30015",
    DatabaseEngine.SNOWFLAKE: "443",
}

DEMO_GATEWAY_URL = "https://9574-2405-201-e01c-b2bd-d926-14ba-a311-6173.ngrok-free.app"
CORS_PROXY_TEST_URL = "https://httpbin.org/get"

# -------------------------
# Client state keys
# -------------------------

CORS_PROXY_URL_KEY = "corsProxyUrl"
USE_CORS_PROXY_KEY = "useCorsProxy"
IS_AUTHENTICATED_KEY = "isAuthenticated"
CURRENT_USER_KEY = "currentUser"

# -------------------------
# Local demo fallback
# -------------------------

# A gateway failure for this host/user pair is answered with a fabricated
# success so the builder can be demoed without the tunnel running.
LOCAL_DEMO_HOST = "localhost"
LOCAL_DEMO_USERNAME = "root"
LOCAL_DEMO_DATABASES = ["airportdb", "employees", "sakila", "world"]
