"""
Defines the database schema for studycards as a SQL string constant,
separate from connection handling and data operations.
"""

DB_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS flashcards (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        question VARCHAR NOT NULL,
        answer VARCHAR NOT NULL,
        category VARCHAR NOT NULL,
        difficulty VARCHAR NOT NULL CHECK (difficulty IN ('easy', 'medium', 'hard')),
        tags VARCHAR[],
        created_at TIMESTAMP WITH TIME ZONE NOT NULL,
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL,
        last_reviewed_at TIMESTAMP WITH TIME ZONE,
        review_count INTEGER NOT NULL DEFAULT 0,
        success_count INTEGER NOT NULL DEFAULT 0,
        next_review_date TIMESTAMP WITH TIME ZONE
    );

    CREATE TABLE IF NOT EXISTS study_sessions (
        id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        name VARCHAR NOT NULL,
        flashcard_ids VARCHAR[],
        created_at TIMESTAMP WITH TIME ZONE NOT NULL,
        last_studied_at TIMESTAMP WITH TIME ZONE,
        total_cards INTEGER NOT NULL DEFAULT 0,
        completed_cards INTEGER NOT NULL DEFAULT 0,
        accuracy_rate DOUBLE NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_flashcards_user_id ON flashcards (user_id);
    CREATE INDEX IF NOT EXISTS idx_flashcards_category ON flashcards (category);
    CREATE INDEX IF NOT EXISTS idx_study_sessions_user_id ON study_sessions (user_id);
"""
