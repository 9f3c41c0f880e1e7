from __future__ import annotations

SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""

SCHEMA_MIGRATIONS_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    applied_at TEXT NOT NULL,
    notes TEXT
);
"""

SCHEMA_PROPERTIES_SQL = """
CREATE TABLE IF NOT EXISTS properties (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_source TEXT NOT NULL,
    external_id TEXT NOT NULL,
    external_url TEXT,
    title TEXT NOT NULL,
    description TEXT,
    price_aed REAL NOT NULL DEFAULT 0,
    size_sqft INTEGER NOT NULL DEFAULT 0,
    bedrooms INTEGER NOT NULL DEFAULT 0,
    bathrooms INTEGER NOT NULL DEFAULT 0,
    property_type TEXT NOT NULL DEFAULT 'apartment',
    listing_type TEXT,
    location_area TEXT NOT NULL DEFAULT 'Dubai',
    latitude REAL,
    longitude REAL,
    is_off_plan INTEGER NOT NULL DEFAULT 0,
    furnishing TEXT,
    rera_permit_number TEXT,
    amenities TEXT,
    images TEXT,
    gallery_urls TEXT,
    floor_plan_urls TEXT,
    agent_data TEXT,
    agency_data TEXT,
    building_info TEXT,
    slug TEXT NOT NULL,
    is_published INTEGER NOT NULL DEFAULT 0,
    last_synced_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (external_source, external_id)
);
CREATE INDEX IF NOT EXISTS idx_properties_last_synced_at ON properties (last_synced_at);
"""

SCHEMA_AGENTS_SQL = """
CREATE TABLE IF NOT EXISTS agents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    name_l1 TEXT,
    phone TEXT,
    email TEXT,
    photo_url TEXT,
    agency_external_id TEXT,
    is_verified INTEGER NOT NULL DEFAULT 0,
    is_trakheesi_verified INTEGER NOT NULL DEFAULT 0,
    languages TEXT,
    agent_rating REAL,
    review_count INTEGER,
    experience_since INTEGER,
    raw_data TEXT,
    last_synced_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

SCHEMA_AGENCIES_SQL = """
CREATE TABLE IF NOT EXISTS agencies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    name_l1 TEXT,
    logo_url TEXT,
    license_number TEXT,
    phone TEXT,
    is_verified INTEGER NOT NULL DEFAULT 0,
    total_agents INTEGER,
    product_score REAL,
    review_score REAL,
    raw_data TEXT,
    last_synced_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

SCHEMA_TRANSACTIONS_SQL = """
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT NOT NULL UNIQUE,
    location_name TEXT,
    property_type TEXT,
    transaction_type TEXT,
    price_aed REAL,
    size_sqft REAL,
    bedrooms INTEGER,
    transaction_date TEXT,
    raw_data TEXT,
    last_synced_at TEXT
);
"""

SCHEMA_SYNC_RUNS_SQL = """
CREATE TABLE IF NOT EXISTS sync_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sync_type TEXT NOT NULL,
    target TEXT,
    status TEXT NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    properties_found INTEGER DEFAULT 0,
    properties_synced INTEGER DEFAULT 0,
    photos_rehosted INTEGER DEFAULT 0,
    photos_cdn_referenced INTEGER DEFAULT 0,
    floor_plans_rehosted INTEGER DEFAULT 0,
    agents_discovered INTEGER DEFAULT 0,
    agencies_discovered INTEGER DEFAULT 0,
    api_calls_used INTEGER DEFAULT 0,
    estimated_storage_saved_mb REAL DEFAULT 0,
    errors TEXT
);
CREATE INDEX IF NOT EXISTS idx_sync_runs_started_at ON sync_runs (started_at);
"""

SCHEMA_RATE_LIMITS_SQL = """
CREATE TABLE IF NOT EXISTS rate_limits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 1,
    window_start TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_rate_limits_key_window ON rate_limits (key, window_start);
"""
