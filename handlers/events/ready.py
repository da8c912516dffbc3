from switchboard import EventListener


class Ready(EventListener):
    def __init__(self):
        super().__init__("ready", once=True)

    async def execute(self):
        self.logger.info("gateway_ready", msg="Successfully connected to Discord")
