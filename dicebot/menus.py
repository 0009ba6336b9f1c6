"""Menu screens and the callback-route dispatcher.

Every screen is a coroutine ``(MenuContext) -> Screen`` registered in
``SCREENS`` under its action name. Buttons carry routes built with
``build_route``; parameters travel through the token store, never inline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from config import MAX_GAME_DRAW_CYCLE
from dicebot.callback_store import (
    STATE_GAME_DRAW_CYCLE,
    STATE_QUERY_CHAT_GROUP_USER,
    PrivateChatSession,
    SessionCache,
    TokenStore,
)
from dicebot.enums import (
    GAMEPLAY_TYPES,
    GameplayType,
    get_gameplay_status,
    get_gameplay_type,
    toggled_status,
)
from dicebot.errors import (
    CollaboratorUnavailable,
    ConfigNotFound,
    DecodingError,
    EncodingError,
    IDGenerationError,
    MalformedRoute,
    MenuError,
    TokenNotFound,
    Unauthorized,
)
from dicebot.params import GroupFieldEdit, GroupRef, GroupTypeChoice, MenuParams, decode_params
from dicebot.routes import build_route, extract_token, parse_route

menu_logger = logging.getLogger("menu")

MAIN_MENU = "main_menu"
ADMIN_GROUP = "admin_group"
JOINED_GROUP = "joined_group"
JOINED_GROUP_INFO = "joined_group_info"
ADD_ADMIN_GROUP = "add_admin_group"
CHAT_GROUP_CONFIG = "chat_group_config"
GAMEPLAY_TYPE = "gameplay_type"
UPDATE_GAMEPLAY_TYPE = "update_gameplay_type"
UPDATE_GAMEPLAY_STATUS = "update_gameplay_status"
UPDATE_GAME_DRAW_CYCLE = "update_game_draw_cycle"
UPDATE_ODDS = "update_odds"
QUERY_CHAT_GROUP_USER = "query_chat_group_user"

CANCEL_HINT = "Send \"cancel\" to stop."

ODDS_LABELS = {
    "simple_odds": "⚖️ Simple odds",
    "triplet_odds": "⚖️ Triplet odds",
}


@dataclass(frozen=True)
class Button:
    label: str
    route: str


@dataclass
class Screen:
    text: str
    rows: List[List[Button]] = field(default_factory=list)


ScreenHandler = Callable[["MenuContext"], Awaitable[Screen]]


@dataclass(frozen=True)
class ScreenSpec:
    handler: ScreenHandler
    params: Optional[Type[Any]] = None
    admin: bool = False


SCREENS: Dict[str, ScreenSpec] = {}


def screen(
    action: str, *, params: Optional[Type[Any]] = None, admin: bool = False
) -> Callable[[ScreenHandler], ScreenHandler]:
    def register(handler: ScreenHandler) -> ScreenHandler:
        SCREENS[action] = ScreenSpec(handler, params, admin)
        return handler

    return register


def back_row(route: str, label: str = "⬅️ Back") -> List[Button]:
    return [Button(label, route)]


def error_screen(message: str) -> Screen:
    return Screen(message, [back_row(MAIN_MENU, "🏠 Main menu")])


class MenuContext:
    def __init__(self, assembler: "MenuAssembler", user_id: int, params: Optional[MenuParams]) -> None:
        self.assembler = assembler
        self.user_id = int(user_id)
        self.params = params

    @property
    def repo(self):
        return self.assembler.repo

    @property
    def sessions(self) -> SessionCache:
        return self.assembler.sessions

    async def route(self, action: str, params: Optional[MenuParams] = None) -> str:
        if params is None:
            return build_route(action)
        token = await self.assembler.tokens.put(params.to_bag())
        return build_route(action, token)

    async def load_group(self, chat_group_id: str) -> Dict[str, Any]:
        group = await self.repo.get_chat_group(chat_group_id)
        if not group:
            menu_logger.warning("chat group %s not found", chat_group_id)
            raise ConfigNotFound(f"chat group {chat_group_id} not found")
        return group

    async def load_odds(self, chat_group_id: str) -> Dict[str, Any]:
        config = await self.repo.get_quick_there_config(chat_group_id)
        if not config:
            menu_logger.warning("quick three config for chat group %s not found", chat_group_id)
            raise ConfigNotFound(f"quick three config of {chat_group_id} not found")
        return config


def _gameplay_of(group: Dict[str, Any]) -> GameplayType:
    gameplay = get_gameplay_type(group.get("gameplay_type"))
    if gameplay is None:
        raise ConfigNotFound(
            f"chat group {group.get('id')} has unknown gameplay type {group.get('gameplay_type')!r}"
        )
    return gameplay


def _format_odds(value: Any) -> str:
    return f"{float(value):g}"


class MenuAssembler:
    def __init__(self, tokens: TokenStore, sessions: SessionCache, repo) -> None:
        self.tokens = tokens
        self.sessions = sessions
        self.repo = repo

    async def require_admin(self, chat_group_id: str, user_id: int) -> None:
        link = await self.repo.get_admin_link(chat_group_id, int(user_id))
        if not link:
            menu_logger.warning(
                "user %s is not an admin of chat group %s", user_id, chat_group_id
            )
            raise Unauthorized(f"user {user_id} is not an admin of {chat_group_id}")

    async def resolve(self, data: str) -> Tuple[str, Optional[MenuParams]]:
        route = parse_route(data)
        spec = SCREENS.get(route.action)
        if spec is None:
            raise MalformedRoute(f"unknown action {route.action!r}")
        token = extract_token(route, required=spec.params is not None)
        if spec.params is None:
            return route.action, None
        bag = await self.tokens.resolve(token)
        return route.action, decode_params(spec.params, bag)

    async def build(self, action: str, params: Optional[MenuParams], user_id: int) -> Screen:
        spec = SCREENS.get(action)
        if spec is None:
            raise MalformedRoute(f"unknown action {action!r}")
        if spec.params is not None and not isinstance(params, spec.params):
            raise DecodingError(f"action {action!r} expects {spec.params.__name__}")
        if spec.admin:
            await self.require_admin(params.chat_group_id, user_id)
        return await spec.handler(MenuContext(self, user_id, params))

    async def render(self, data: str, user_id: int) -> Screen:
        async def run() -> Screen:
            action, params = await self.resolve(data)
            return await self.build(action, params, user_id)

        return await self.guarded(run(), context=data)

    async def guarded(
        self, pending: Awaitable[Optional[Screen]], *, context: str = ""
    ) -> Optional[Screen]:
        """Await a screen build and turn any failure into an error screen."""
        try:
            return await pending
        except TokenNotFound as exc:
            menu_logger.info("stale route %r: %s", context, exc)
            return error_screen(exc.user_message)
        except (EncodingError, DecodingError, IDGenerationError) as exc:
            menu_logger.error("callback data failure on %r: %s", context, exc)
            return error_screen(MenuError.user_message)
        except (Unauthorized, ConfigNotFound, CollaboratorUnavailable) as exc:
            menu_logger.warning("%s on %r: %s", type(exc).__name__, context, exc)
            return error_screen(exc.user_message)
        except MenuError as exc:
            menu_logger.info("%s on %r: %s", type(exc).__name__, context, exc)
            return error_screen(exc.user_message)
        except Exception:
            menu_logger.exception("menu query failed on %r", context)
            return error_screen(CollaboratorUnavailable.user_message)

    async def group_config(self, chat_group_id: str, user_id: int) -> Screen:
        return await self.build(CHAT_GROUP_CONFIG, GroupRef(chat_group_id), user_id)


@screen(MAIN_MENU)
async def main_menu_screen(ctx: MenuContext) -> Screen:
    return Screen(
        "🎲 Welcome! Choose what to manage:",
        [
            [
                Button("👨🏻‍💼 Groups I joined", build_route(JOINED_GROUP)),
                Button("👮🏻‍♂️ Groups I manage", build_route(ADMIN_GROUP)),
            ]
        ],
    )


@screen(ADMIN_GROUP)
async def admin_group_screen(ctx: MenuContext) -> Screen:
    rows = [[Button("➕ Add a new group", build_route(ADD_ADMIN_GROUP))]]
    links = await ctx.repo.list_admin_links(ctx.user_id)
    if not links:
        rows.append(back_row(MAIN_MENU))
        return Screen("You do not manage any groups yet.", rows)

    group_ids = [str(link["chat_group_id"]) for link in links]
    groups = {str(group["id"]): group for group in await ctx.repo.list_chat_groups(group_ids)}
    listed = 0
    for chat_group_id in group_ids:
        group = groups.get(chat_group_id)
        if not group:
            menu_logger.warning("admin link points at missing chat group %s", chat_group_id)
            continue
        route = await ctx.route(CHAT_GROUP_CONFIG, GroupRef(chat_group_id))
        rows.append([Button(f"👥 {group.get('tg_chat_group_title') or chat_group_id}", route)])
        listed += 1
    rows.append(back_row(MAIN_MENU))
    return Screen(f"You manage {listed} group(s):", rows)


@screen(JOINED_GROUP)
async def joined_group_screen(ctx: MenuContext) -> Screen:
    memberships = await ctx.repo.list_memberships(ctx.user_id)
    if not memberships:
        return Screen("You have not joined any groups yet.", [back_row(MAIN_MENU)])

    group_ids = [str(item["chat_group_id"]) for item in memberships]
    groups = {str(group["id"]): group for group in await ctx.repo.list_chat_groups(group_ids)}
    rows: List[List[Button]] = []
    for chat_group_id in group_ids:
        group = groups.get(chat_group_id)
        if not group:
            menu_logger.warning("membership points at missing chat group %s", chat_group_id)
            continue
        route = await ctx.route(JOINED_GROUP_INFO, GroupRef(chat_group_id))
        rows.append([Button(f"👥 {group.get('tg_chat_group_title') or chat_group_id}", route)])
    rows.append(back_row(MAIN_MENU))
    return Screen(f"You joined {len(rows) - 1} group(s):", rows)


@screen(JOINED_GROUP_INFO, params=GroupRef)
async def joined_group_info_screen(ctx: MenuContext) -> Screen:
    chat_group_id = ctx.params.chat_group_id
    group = await ctx.load_group(chat_group_id)
    member = await ctx.repo.get_member(chat_group_id, ctx.user_id)
    if not member:
        raise ConfigNotFound(f"user {ctx.user_id} is not a member of {chat_group_id}")
    gameplay = _gameplay_of(group)
    lines = [
        f"👥 {group.get('tg_chat_group_title') or chat_group_id}",
        f"🛠️ Game: {gameplay.name}",
        f"⏲️ Draw cycle: {group.get('game_draw_cycle')} min",
        f"💰 Your balance: {member.get('balance', 0)}",
    ]
    return Screen("\n".join(lines), [back_row(JOINED_GROUP)])


@screen(ADD_ADMIN_GROUP)
async def add_admin_group_screen(ctx: MenuContext) -> Screen:
    text = "\n".join(
        [
            "To add a group:",
            "1. Add this bot to the group.",
            "2. As a group admin, send /register in the group.",
            "The group will then show up under “Groups I manage”.",
        ]
    )
    return Screen(text, [back_row(ADMIN_GROUP)])


@screen(CHAT_GROUP_CONFIG, params=GroupRef, admin=True)
async def chat_group_config_screen(ctx: MenuContext) -> Screen:
    chat_group_id = ctx.params.chat_group_id
    group = await ctx.load_group(chat_group_id)
    gameplay = _gameplay_of(group)
    status = get_gameplay_status(group.get("gameplay_status"))
    if status is None:
        raise ConfigNotFound(
            f"chat group {chat_group_id} has unknown status {group.get('gameplay_status')!r}"
        )
    odds = await ctx.load_odds(chat_group_id) if gameplay.has_odds else None

    # One token serves every button that only needs the group id.
    token = await ctx.assembler.tokens.put(GroupRef(chat_group_id).to_bag())
    rows = [
        [Button(f"🛠️ Game: 【{gameplay.name}】", build_route(GAMEPLAY_TYPE, token))],
        [
            Button(f"🕹️ Status: {status.name}", build_route(UPDATE_GAMEPLAY_STATUS, token)),
            Button(
                f"⏲️ Draw cycle: {group.get('game_draw_cycle')} min",
                build_route(UPDATE_GAME_DRAW_CYCLE, token),
            ),
        ],
    ]
    if odds is not None:
        for odds_field, label in ODDS_LABELS.items():
            route = await ctx.route(UPDATE_ODDS, GroupFieldEdit(chat_group_id, odds_field))
            rows.append([Button(f"{label}: {_format_odds(odds[odds_field])}x", route)])
    rows.append([Button("🔍 Query member", build_route(QUERY_CHAT_GROUP_USER, token))])
    rows.append(back_row(ADMIN_GROUP))
    title = group.get("tg_chat_group_title") or chat_group_id
    return Screen(f"👥 {title}\nConfigure the game for this group:", rows)


@screen(GAMEPLAY_TYPE, params=GroupRef, admin=True)
async def gameplay_type_screen(ctx: MenuContext) -> Screen:
    chat_group_id = ctx.params.chat_group_id
    group = await ctx.load_group(chat_group_id)
    current = group.get("gameplay_type")
    rows: List[List[Button]] = []
    for value, gameplay in GAMEPLAY_TYPES.items():
        label = f"{gameplay.name} ✅" if value == current else gameplay.name
        route = await ctx.route(UPDATE_GAMEPLAY_TYPE, GroupTypeChoice(chat_group_id, value))
        rows.append([Button(label, route)])
    rows.append(back_row(await ctx.route(CHAT_GROUP_CONFIG, GroupRef(chat_group_id))))
    return Screen("Pick the game for this group:", rows)


@screen(UPDATE_GAMEPLAY_TYPE, params=GroupTypeChoice, admin=True)
async def update_gameplay_type_screen(ctx: MenuContext) -> Screen:
    choice = ctx.params
    if get_gameplay_type(choice.gameplay_type) is None:
        raise DecodingError(f"unknown gameplay type {choice.gameplay_type!r}")
    group = await ctx.load_group(choice.chat_group_id)
    if group.get("gameplay_type") != choice.gameplay_type:
        await ctx.repo.set_gameplay_type(choice.chat_group_id, choice.gameplay_type)
        menu_logger.info(
            "user %s set gameplay type of %s to %s",
            ctx.user_id,
            choice.chat_group_id,
            choice.gameplay_type,
        )
    return await chat_group_config_screen(
        MenuContext(ctx.assembler, ctx.user_id, GroupRef(choice.chat_group_id))
    )


@screen(UPDATE_GAMEPLAY_STATUS, params=GroupRef, admin=True)
async def update_gameplay_status_screen(ctx: MenuContext) -> Screen:
    chat_group_id = ctx.params.chat_group_id
    group = await ctx.load_group(chat_group_id)
    status = toggled_status(group.get("gameplay_status"))
    await ctx.repo.set_gameplay_status(chat_group_id, status)
    menu_logger.info("user %s set gameplay status of %s to %s", ctx.user_id, chat_group_id, status)
    return await chat_group_config_screen(ctx)


@screen(UPDATE_GAME_DRAW_CYCLE, params=GroupRef, admin=True)
async def update_game_draw_cycle_screen(ctx: MenuContext) -> Screen:
    chat_group_id = ctx.params.chat_group_id
    group = await ctx.load_group(chat_group_id)
    await ctx.sessions.save(ctx.user_id, PrivateChatSession(chat_group_id, STATE_GAME_DRAW_CYCLE))
    text = "\n".join(
        [
            f"⏲️ Current draw cycle: {group.get('game_draw_cycle')} min",
            f"Send the new cycle in minutes (1-{MAX_GAME_DRAW_CYCLE}).",
            CANCEL_HINT,
        ]
    )
    return Screen(text, [back_row(await ctx.route(CHAT_GROUP_CONFIG, GroupRef(chat_group_id)))])


@screen(UPDATE_ODDS, params=GroupFieldEdit, admin=True)
async def update_odds_screen(ctx: MenuContext) -> Screen:
    edit = ctx.params
    group = await ctx.load_group(edit.chat_group_id)
    if not _gameplay_of(group).has_odds:
        raise ConfigNotFound(f"chat group {edit.chat_group_id} has no odds to edit")
    odds = await ctx.load_odds(edit.chat_group_id)
    await ctx.sessions.save(ctx.user_id, PrivateChatSession(edit.chat_group_id, edit.field))
    text = "\n".join(
        [
            f"{ODDS_LABELS[edit.field]}: {_format_odds(odds[edit.field])}x",
            "Send the new odds, e.g. 1.95",
            CANCEL_HINT,
        ]
    )
    return Screen(text, [back_row(await ctx.route(CHAT_GROUP_CONFIG, GroupRef(edit.chat_group_id)))])


@screen(QUERY_CHAT_GROUP_USER, params=GroupRef, admin=True)
async def query_chat_group_user_screen(ctx: MenuContext) -> Screen:
    chat_group_id = ctx.params.chat_group_id
    await ctx.load_group(chat_group_id)
    await ctx.sessions.save(
        ctx.user_id, PrivateChatSession(chat_group_id, STATE_QUERY_CHAT_GROUP_USER)
    )
    return Screen(
        f"🔍 Send the Telegram user id of the member to look up.\n{CANCEL_HINT}",
        [back_row(await ctx.route(CHAT_GROUP_CONFIG, GroupRef(chat_group_id)))],
    )


def is_menu_route(data: Optional[str]) -> bool:
    action = (data or "").partition("?")[0]
    return action in SCREENS
