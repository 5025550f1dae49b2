class GatewayError(RuntimeError):
    """Échec d'une passerelle de paiement; le message est affichable tel quel au client."""

    def __init__(self, message: str, gateway: str = "", status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.gateway = gateway
        self.status_code = status_code
