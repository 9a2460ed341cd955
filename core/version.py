VERSION: str = "0.3.0"
