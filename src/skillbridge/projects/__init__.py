"""Project bookkeeping — change sets, allocation history and the creation wizard."""
