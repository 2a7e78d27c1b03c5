from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- APP ---
    APP_NAME: str = "Chessboard_Orcamentos"
    LOG_LEVEL: str = "INFO"

    # --- DATABASE ---
    DB_USER: str = "root"
    DB_PASSWORD: str = "admin"
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_NAME: str = "chessboard"
    DB_CHARSET: str = "utf8mb4"
    DB_URI: str = ""

    # --- GRAVACAO EM LOTE ---
    # numero de linhas gravadas/apagadas em paralelo (uma sessao por linha)
    BATCH_MAX_WORKERS: int = 4

    class Config:
        env_file = ".env"
        case_sensitive = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        # Se DB_URI não estiver definido no .env, monta automaticamente
        if not self.DB_URI:
            self.DB_URI = (
                f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset={self.DB_CHARSET}"
            )

    def __repr__(self):
        """Esconde info sensível quando imprimido"""
        masked = self.DB_URI.replace(self.DB_PASSWORD, "****") if self.DB_PASSWORD else self.DB_URI
        return (
            f"<Settings APP_NAME={self.APP_NAME} "
            f"DB_URI={masked} "
            f"BATCH_MAX_WORKERS={self.BATCH_MAX_WORKERS}>"
        )


settings = Settings()
