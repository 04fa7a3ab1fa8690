from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "categories" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "id" VARCHAR(64) NOT NULL PRIMARY KEY,
    "name" VARCHAR(100) NOT NULL,
    "color" VARCHAR(32) NOT NULL DEFAULT '#E3F2FD'
);
CREATE TABLE IF NOT EXISTS "locations" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "id" VARCHAR(64) NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL,
    "address" TEXT
);
CREATE TABLE IF NOT EXISTS "products" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "id" VARCHAR(64) NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL,
    "categories" JSON NOT NULL,
    "suppliers" JSON NOT NULL,
    "requires_quantity" INT NOT NULL DEFAULT 0,
    "locations" JSON NOT NULL
);
CREATE TABLE IF NOT EXISTS "suppliers" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "id" VARCHAR(64) NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL
);
CREATE TABLE IF NOT EXISTS "order_history" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "id" VARCHAR(140) NOT NULL PRIMARY KEY /* Pattern: <session_id>-<product_id> */,
    "session_id" VARCHAR(64) NOT NULL,
    "product_id" VARCHAR(64) NOT NULL,
    "location_id" VARCHAR(64) NOT NULL,
    "order_date" TIMESTAMP NOT NULL,
    "quantity_ordered" INT,
    "suppliers" JSON NOT NULL,
    "category_ids" JSON NOT NULL
);
CREATE INDEX IF NOT EXISTS "idx_order_histo_session_9b1f3e" ON "order_history" ("session_id");
CREATE INDEX IF NOT EXISTS "idx_order_histo_product_4c20a7" ON "order_history" ("product_id");
CREATE INDEX IF NOT EXISTS "idx_order_histo_locatio_e8d512" ON "order_history" ("location_id");
CREATE INDEX IF NOT EXISTS "idx_order_histo_order_d_71ac09" ON "order_history" ("order_date");
CREATE TABLE IF NOT EXISTS "sessions" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "id" VARCHAR(64) NOT NULL PRIMARY KEY,
    "location_id" VARCHAR(64) NOT NULL,
    "user_name" VARCHAR(255) NOT NULL,
    "start_date" TIMESTAMP NOT NULL,
    "end_date" TIMESTAMP,
    "items" JSON NOT NULL,
    "is_submitted" INT NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS "idx_sessions_locatio_5e0c8b" ON "sessions" ("location_id");
CREATE INDEX IF NOT EXISTS "idx_sessions_is_subm_a3f6d2" ON "sessions" ("is_submitted");
CREATE TABLE IF NOT EXISTS "app_settings" (
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "key" VARCHAR(100) NOT NULL PRIMARY KEY,
    "value" TEXT NOT NULL
) /* Small out-of-band configuration replicated through the remote store. */;
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSON NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        """
