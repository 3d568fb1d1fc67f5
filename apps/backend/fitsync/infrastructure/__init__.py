"""Infrastructure adapters (Supabase, in-memory, resilience helpers)."""
