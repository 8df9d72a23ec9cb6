"""Matrix protocol adapter and message content builders."""
