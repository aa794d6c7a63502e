"""Application services: matchups, votes, leaderboard, and storage."""
