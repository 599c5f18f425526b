"""CryptoBoards: wagered board games settled on Solana."""
