"""Database schema for Opportunity Radar."""

SCHEMA = """
CREATE TABLE IF NOT EXISTS sources (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    platform TEXT NOT NULL,  -- reddit, hackernews, indiehackers, twitter, producthunt, quora, other
    identifier TEXT NOT NULL,  -- subreddit name or story list type
    display_name TEXT NOT NULL,
    scrape_frequency_hours INTEGER NOT NULL DEFAULT 6,
    is_active INTEGER NOT NULL DEFAULT 1,
    last_scraped_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (platform, identifier)
);

CREATE TABLE IF NOT EXISTS raw_posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id INTEGER NOT NULL,
    external_id TEXT NOT NULL,
    title TEXT,
    body TEXT,
    author TEXT,
    url TEXT,
    score INTEGER NOT NULL DEFAULT 0,
    comment_count INTEGER NOT NULL DEFAULT 0,
    posted_at TEXT,
    scraped_at TEXT NOT NULL,
    is_processed INTEGER NOT NULL DEFAULT 0,
    is_opportunity INTEGER,  -- NULL = pending, 1 = confirmed, 0 = rejected
    created_at TEXT NOT NULL,
    UNIQUE (source_id, external_id),
    CHECK (is_processed = 0 OR is_opportunity IS NOT NULL),
    FOREIGN KEY (source_id) REFERENCES sources(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS niches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    keywords TEXT NOT NULL,  -- JSON array of keyword substrings
    priority TEXT NOT NULL,  -- high, medium, low
    description TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS opportunities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    raw_post_id INTEGER,  -- NULL for manual entries
    title TEXT NOT NULL,
    problem_statement TEXT NOT NULL,
    proposed_solution TEXT,
    target_audience TEXT,

    -- Sub-scores (1-10)
    pain_intensity_score INTEGER NOT NULL,
    market_size_score INTEGER NOT NULL,
    technical_feasibility_score INTEGER NOT NULL,
    competition_score INTEGER NOT NULL,
    monetization_potential_score INTEGER NOT NULL,
    overall_score REAL GENERATED ALWAYS AS (
        ROUND(
            (pain_intensity_score + market_size_score + technical_feasibility_score
             + competition_score + monetization_potential_score) / 5.0,
            2
        )
    ) STORED,

    ai_analysis_summary TEXT,
    similar_existing_products TEXT NOT NULL DEFAULT '[]',  -- JSON array
    suggested_mvp_features TEXT NOT NULL DEFAULT '[]',  -- JSON array
    estimated_build_time TEXT,
    suggested_pricing_model TEXT,
    keywords TEXT NOT NULL DEFAULT '[]',  -- JSON array

    -- Workflow
    status TEXT NOT NULL DEFAULT 'new',  -- new, reviewing, researching, validated, building, rejected, archived
    priority TEXT NOT NULL DEFAULT 'medium',  -- high, medium, low
    notes TEXT,
    is_starred INTEGER NOT NULL DEFAULT 0,
    ai_provider TEXT,

    analyzed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (raw_post_id) REFERENCES raw_posts(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS research (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    opportunity_id INTEGER NOT NULL,
    research_type TEXT NOT NULL,  -- competitor_analysis, market_size, technical_spike
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    sources TEXT NOT NULL DEFAULT '[]',  -- JSON array
    ai_generated INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (opportunity_id) REFERENCES opportunities(id) ON DELETE CASCADE
);

-- Append-only audit trail
CREATE TABLE IF NOT EXISTS reactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    opportunity_id INTEGER NOT NULL,
    action_type TEXT NOT NULL,  -- status_change, starred, unstarred, note, research_added
    action_data TEXT NOT NULL DEFAULT '{}',  -- JSON object
    created_at TEXT NOT NULL,
    FOREIGN KEY (opportunity_id) REFERENCES opportunities(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS scrape_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id INTEGER NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    posts_found INTEGER NOT NULL DEFAULT 0,
    posts_new INTEGER NOT NULL DEFAULT 0,
    opportunities_found INTEGER NOT NULL DEFAULT 0,
    error_message TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (source_id) REFERENCES sources(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sources_active ON sources(is_active);
CREATE INDEX IF NOT EXISTS idx_raw_posts_pending ON raw_posts(is_processed, is_opportunity, score DESC);
CREATE INDEX IF NOT EXISTS idx_opportunities_status ON opportunities(status);
CREATE INDEX IF NOT EXISTS idx_opportunities_priority ON opportunities(priority);
CREATE INDEX IF NOT EXISTS idx_opportunities_overall ON opportunities(overall_score DESC);
CREATE INDEX IF NOT EXISTS idx_research_opportunity ON research(opportunity_id);
CREATE INDEX IF NOT EXISTS idx_reactions_opportunity ON reactions(opportunity_id);
CREATE INDEX IF NOT EXISTS idx_scrape_logs_created ON scrape_logs(created_at DESC);
"""
