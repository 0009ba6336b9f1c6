from dicebot.handlers.core import router as core_router
from dicebot.handlers.groups import router as groups_router
from dicebot.handlers.private_input import router as private_input_router

routers = [
    core_router,
    groups_router,
    private_input_router,
]
