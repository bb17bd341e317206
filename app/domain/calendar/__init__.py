"""Calendar domain - local events, Google OAuth connection and sync endpoints"""
