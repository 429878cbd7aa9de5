import discord
from discord import app_commands
from discord.ext import commands
import logging
import asyncio
from typing import Dict, Optional

from .access_guard import landing_screen, leave_warning
from .config_manager import ConfigManager, describe_configuration
from .models import AnswerRecord, Question, Screen, SessionState
from .quiz_controller import QuizController, QuizControllerError
from .scoring import percentage, progress, results_summary, score, score_message
from .trivia_client import TriviaClient

logger = logging.getLogger(__name__)

COLOR_OK = 0x00ff00
COLOR_WARN = 0xffaa00
COLOR_ERROR = 0xff0000
COLOR_INFO = 0x6699ff

OPTION_LABELS = "ABCDEFGH"


def countdown_color(remaining: int) -> int:
    return COLOR_OK if remaining > 10 else 0xff6600 if remaining > 5 else COLOR_ERROR


def build_question_embed(
    state: SessionState,
    question: Question,
    remaining: int,
    draft: Optional[str] = None,
    record: Optional[AnswerRecord] = None
) -> discord.Embed:
    """Render the attempt screen for one question."""
    embed = discord.Embed(
        title=f"🎯 Question {progress(state)}/{len(state.questions)}",
        description=question.prompt,
        color=countdown_color(remaining) if record is None else (COLOR_OK if record.is_correct else COLOR_ERROR)
    )

    lines = []
    for label, option in zip(OPTION_LABELS, question.presented_options):
        marker = ""
        if record is not None:
            if option == question.correct_answer:
                marker = " ✅"
            elif option == record.chosen_option:
                marker = " ❌"
        elif option == draft:
            marker = " ◀"
        lines.append(f"**{label}.** {option}{marker}")
    embed.add_field(name="Options", value="\n".join(lines) or "-", inline=False)

    embed.add_field(name="📚 Category", value=question.category_label or "-", inline=True)
    embed.add_field(name="📈 Difficulty", value=question.difficulty_label or "-", inline=True)

    if record is None:
        timer_emoji = "⏱️" if remaining > 5 else "🚨"
        embed.add_field(
            name=f"{timer_emoji} Time Remaining",
            value=f"{remaining} second{'s' if remaining != 1 else ''}",
            inline=True
        )
        embed.set_footer(text="Pick an option and press Confirm before time runs out")
    elif record.chosen_option is None:
        embed.set_footer(text="⏰ Time's up! No answer was selected")
    else:
        embed.set_footer(text="✅ Correct!" if record.is_correct else "❌ Incorrect")
    return embed


def build_results_embed(state: SessionState) -> discord.Embed:
    """Render the results screen."""
    total = len(state.questions)
    final_score = score(state)
    final_percentage = percentage(state)
    embed = discord.Embed(
        title="🏁 Quiz Results",
        description=f"You answered **{final_score}** out of **{total}** questions correctly "
                    f"(**{final_percentage}%**).\n{score_message(final_percentage)}",
        color=COLOR_INFO
    )

    for row in results_summary(state)[:25]:
        if not row['answered']:
            mark, answer = "⚪", "Not answered"
        elif row['chosen_option'] is None:
            mark, answer = "⏰", "No answer (time ran out)"
        else:
            mark, answer = ("✅" if row['is_correct'] else "❌"), row['chosen_option']
        value = f"Your answer: {answer}"
        if not row['is_correct']:
            value += f"\nCorrect answer: {row['correct_answer']}"
        embed.add_field(
            name=f"{mark} Q{row['position']}: {row['prompt'][:200]}",
            value=value[:1024],
            inline=False
        )

    embed.set_footer(text="Use /quiz_reset to play again")
    return embed


def build_configure_embed(state: SessionState, categories: Dict[int, str]) -> discord.Embed:
    """Render the configuration screen."""
    configuration = state.configuration
    embed = discord.Embed(
        title="⚙️ Quiz Configuration",
        description=describe_configuration(configuration, categories.get(configuration.category_id)),
        color=COLOR_INFO
    )
    if state.is_loading_questions:
        embed.add_field(name="⏳ Loading", value="Questions are being loaded...", inline=False)
    if state.load_error:
        embed.add_field(name="❌ Error", value=state.load_error[:1024], inline=False)
    embed.set_footer(text="Use /quiz_config to change settings and /quiz_start to begin")
    return embed


class AnswerView(discord.ui.View):
    """Option buttons plus a Confirm button for the current question."""

    def __init__(self, bot: "QuizBot", question: Question, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.bot = bot
        self.question_id = question.id

        for index, option in enumerate(question.presented_options):
            button = discord.ui.Button(
                label=f"{OPTION_LABELS[index]}. {option}"[:80],
                style=discord.ButtonStyle.secondary,
                custom_id=f"option:{question.id}:{index}",
                row=index // 4
            )
            button.callback = self._make_select_callback(option)
            self.add_item(button)

        confirm = discord.ui.Button(
            label="Confirm",
            style=discord.ButtonStyle.success,
            custom_id=f"confirm:{question.id}",
            row=2
        )
        confirm.callback = self._confirm_callback
        self.add_item(confirm)

    def _make_select_callback(self, option: str):
        async def callback(interaction: discord.Interaction):
            await self.bot.handle_select(interaction, self.question_id, option)
        return callback

    async def _confirm_callback(self, interaction: discord.Interaction):
        await self.bot.handle_confirm(interaction, self.question_id)


class QuizBot(commands.Bot):
    """Discord front end for a single trivia quiz session"""

    # Edit the attempt message every N ticks to stay within rate limits
    TICK_EDIT_INTERVAL = 5

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}
        self.config_manager: Optional[ConfigManager] = None
        self.trivia_client: Optional[TriviaClient] = None
        self.quiz_controller: Optional[QuizController] = None

        self._categories: Dict[int, str] = {}
        self._attempt_channel: Optional[discord.abc.Messageable] = None
        self._attempt_message: Optional[discord.Message] = None
        self._background_tasks = set()

    async def setup_hook(self):
        """Called when the bot is starting up"""
        logger.info("Setting up bot components...")

        self.config_manager = ConfigManager()
        errors = self.config_manager.apply_config(self.app_config)
        for error in errors:
            logger.warning(f"Ignoring configuration entry: {error}")

        source = self.config_manager.get_question_source_settings()
        self.trivia_client = TriviaClient(
            base_url=source['base_url'],
            request_timeout=source['request_timeout'],
            categories_cache_ttl=source['categories_cache_ttl'],
        )
        self.quiz_controller = QuizController(self.config_manager, self.trivia_client)
        self.quiz_controller.subscribe(self.on_session_change)
        self.quiz_controller.countdown.add_tick_listener(self.on_countdown_tick)

        await self.setup_commands()
        logger.info("Bot setup completed successfully")

    async def close(self):
        if self.quiz_controller is not None:
            await self.quiz_controller.shutdown()
        await super().close()

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="quiz_help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="quiz_categories", description="List question categories")
        async def categories_command(interaction: discord.Interaction):
            await self.handle_categories(interaction)

        @self.tree.command(name="quiz_config", description="Configure the next quiz")
        @app_commands.describe(
            questions="Number of questions (1-50)",
            category="Category id from /quiz_categories",
            difficulty="Question difficulty",
            question_type="Question format"
        )
        @app_commands.choices(
            difficulty=[app_commands.Choice(name=name, value=name) for name in ("any", "easy", "medium", "hard")],
            question_type=[app_commands.Choice(name=name, value=name) for name in ("any", "multiple", "boolean")]
        )
        async def config_command(
            interaction: discord.Interaction,
            questions: Optional[int] = None,
            category: Optional[int] = None,
            difficulty: Optional[app_commands.Choice[str]] = None,
            question_type: Optional[app_commands.Choice[str]] = None
        ):
            await self.handle_config(
                interaction,
                questions,
                category,
                difficulty.value if difficulty else None,
                question_type.value if question_type else None
            )

        @self.tree.command(name="quiz_start", description="Fetch questions and start the quiz")
        async def start_command(interaction: discord.Interaction):
            await self.handle_start(interaction)

        @self.tree.command(name="quiz_status", description="Show the current quiz screen")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="quiz_results", description="Show the results of the finished quiz")
        async def results_command(interaction: discord.Interaction):
            await self.show_screen(interaction, Screen.RESULTS)

        @self.tree.command(name="quiz_reset", description="Abandon the current quiz and start over")
        async def reset_command(interaction: discord.Interaction):
            await self.handle_reset(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        logger.info(f"Bot is ready! Logged in as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        logger.error(f"An error occurred in event {event}", exc_info=True)

    # Screens

    async def show_screen(self, interaction: discord.Interaction, requested: Screen):
        """Render the requested screen, or the guard's redirect target if it is denied."""
        decision = self.quiz_controller.guard(requested)
        screen = requested if decision.admitted else self.quiz_controller.resolve_screen(requested)
        if not decision.admitted:
            logger.debug(f"Screen {requested.value} denied, showing {screen.value}")

        state = self.quiz_controller.current_state
        if screen is Screen.RESULTS:
            await self.respond(interaction, embed=build_results_embed(state))
        elif screen is Screen.ATTEMPT:
            await self.respond(interaction, embed=self._current_question_embed(state), ephemeral=True)
        else:
            await self.respond(interaction, embed=build_configure_embed(state, self._categories))

    def _current_question_embed(self, state: SessionState) -> discord.Embed:
        question = state.current_question
        if question is None:
            return discord.Embed(title="⏳ Loading questions...", color=COLOR_INFO)
        countdown = self.quiz_controller.countdown
        return build_question_embed(
            state,
            question,
            countdown.remaining,
            countdown.draft,
            state.answer_for(question.id)
        )

    async def respond(self, interaction: discord.Interaction, ephemeral: bool = False, **kwargs):
        try:
            if interaction.response.is_done():
                await interaction.followup.send(ephemeral=ephemeral, **kwargs)
            else:
                await interaction.response.send_message(ephemeral=ephemeral, **kwargs)
        except discord.HTTPException as e:
            logger.error(f"Failed to send response: {e}")

    # Command handlers

    async def handle_help(self, interaction: discord.Interaction):
        embed = discord.Embed(
            title="🤖 Trivia Quiz Commands",
            description="Configure a quiz, then answer each question before the timer runs out.",
            color=COLOR_INFO
        )
        embed.add_field(
            name="Commands",
            value=(
                "`/quiz_categories` - list categories\n"
                "`/quiz_config` - set question count, category, difficulty and type\n"
                "`/quiz_start` - fetch questions and start\n"
                "`/quiz_status` - show the current screen\n"
                "`/quiz_results` - show results of the finished quiz\n"
                "`/quiz_reset` - abandon the quiz and keep the settings"
            ),
            inline=False
        )
        embed.add_field(name="Settings", value=self.config_manager.get_settings_summary(), inline=False)
        await self.respond(interaction, embed=embed, ephemeral=True)

    async def handle_categories(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        result = await self.quiz_controller.load_categories()
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'])
            return

        self._categories = {item['id']: item['name'] for item in result['categories']}
        lines = [f"`{item['id']}` {item['name']}" for item in result['categories']]
        embed = discord.Embed(
            title="📚 Categories",
            description="\n".join(lines)[:4096] or "No categories available",
            color=COLOR_INFO
        )
        await self.respond(interaction, embed=embed, ephemeral=True)

    async def handle_config(self, interaction: discord.Interaction, questions: Optional[int],
                            category: Optional[int], difficulty: Optional[str], question_type: Optional[str]):
        decision = self.quiz_controller.guard(Screen.CONFIGURE)
        if not decision.admitted:
            await self.show_screen(interaction, Screen.CONFIGURE)
            return

        current = self.quiz_controller.current_state.configuration
        result = self.quiz_controller.configure(
            question_count=questions if questions is not None else current.question_count,
            category_id=category if category is not None else current.category_id,
            difficulty=difficulty if difficulty is not None else current.difficulty,
            question_type=question_type if question_type is not None else current.question_type,
        )
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Configuration Error")
            return
        await self.show_screen(interaction, Screen.CONFIGURE)

    async def handle_start(self, interaction: discord.Interaction):
        decision = self.quiz_controller.guard(Screen.CONFIGURE)
        if not decision.admitted:
            await self.show_screen(interaction, Screen.CONFIGURE)
            return

        await interaction.response.defer()
        result = await self.quiz_controller.start_quiz()
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Quiz Start Failed")
            return

        info = result['session_info']
        embed = discord.Embed(
            title="🎯 Quiz Started!",
            description=f"{info['total_questions']} questions, "
                        f"{self.config_manager.get_timer_duration()} seconds each",
            color=COLOR_OK
        )
        await self.respond(interaction, embed=embed)
        self._attempt_channel = interaction.channel
        await self.present_current_question()

    async def handle_status(self, interaction: discord.Interaction):
        await self.show_screen(interaction, landing_screen(self.quiz_controller.current_state))

    async def handle_reset(self, interaction: discord.Interaction):
        warning = leave_warning(self.quiz_controller.current_state)
        self.quiz_controller.reset()
        self._attempt_message = None
        if warning:
            await self.send_warning_response(interaction, "The quiz in progress was abandoned.", "⚠️ Quiz Reset")
        else:
            await self.show_screen(interaction, Screen.CONFIGURE)

    async def handle_select(self, interaction: discord.Interaction, question_id: str, option: str):
        if not await self._check_attempt_interaction(interaction, question_id):
            return
        self.quiz_controller.select_option(option)
        await self._edit_from_interaction(interaction)

    async def handle_confirm(self, interaction: discord.Interaction, question_id: str):
        if not await self._check_attempt_interaction(interaction, question_id):
            return
        try:
            record = self.quiz_controller.confirm_answer()
        except QuizControllerError as e:
            await self.send_error_response(interaction, str(e))
            return
        if record is None:
            await self.send_warning_response(interaction, "Select an option first.", "⚠️ No Option Selected")
            return
        await self._edit_from_interaction(interaction)

    async def _check_attempt_interaction(self, interaction: discord.Interaction, question_id: str) -> bool:
        state = self.quiz_controller.current_state
        question = state.current_question
        if not self.quiz_controller.guard(Screen.ATTEMPT).admitted or question is None or question.id != question_id:
            await self.send_warning_response(
                interaction, "This question is no longer active. Use /quiz_status.", "⚠️ Answer Expired"
            )
            return False
        return True

    async def _edit_from_interaction(self, interaction: discord.Interaction):
        state = self.quiz_controller.current_state
        question = state.current_question
        answered = question is not None and state.answer_for(question.id) is not None
        view = None if answered or question is None else AnswerView(self, question)
        try:
            await interaction.response.edit_message(embed=self._current_question_embed(state), view=view)
        except discord.HTTPException as e:
            logger.error(f"Failed to update question message: {e}")

    # Attempt message lifecycle

    async def present_current_question(self):
        """Send a new attempt message for the current question."""
        state = self.quiz_controller.current_state
        question = state.current_question
        if self._attempt_channel is None or question is None or not state.is_in_progress:
            return
        try:
            self._attempt_message = await self._attempt_channel.send(
                embed=self._current_question_embed(state),
                view=AnswerView(self, question)
            )
        except discord.HTTPException as e:
            logger.error(f"Failed to present question {question.id}: {e}")
            self._attempt_message = None

    async def refresh_attempt_message(self, with_view: bool = True):
        if self._attempt_message is None:
            return
        state = self.quiz_controller.current_state
        question = state.current_question
        if question is None:
            return
        kwargs = {'embed': self._current_question_embed(state)}
        if not with_view:
            kwargs['view'] = None
        try:
            await self._attempt_message.edit(**kwargs)
        except discord.HTTPException as e:
            logger.error(f"Failed to refresh question message: {e}")

    async def send_results(self):
        if self._attempt_channel is None:
            return
        try:
            await self._attempt_channel.send(embed=build_results_embed(self.quiz_controller.current_state))
        except discord.HTTPException as e:
            logger.error(f"Failed to send results: {e}")

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def on_session_change(self, previous: SessionState, current: SessionState):
        """Keep the attempt message in step with the session."""
        if current.is_completed and not previous.is_completed:
            self._attempt_message = None
            self._spawn(self.send_results())
        elif current.is_in_progress and previous.is_in_progress:
            if current.current_index != previous.current_index:
                self._spawn(self.present_current_question())
            elif len(current.answers) != len(previous.answers) or current.answers != previous.answers:
                self._spawn(self.refresh_attempt_message(with_view=False))

    def on_countdown_tick(self, remaining: int):
        if remaining % self.TICK_EDIT_INTERVAL == 0 or remaining <= 5:
            self._spawn(self.refresh_attempt_message())

    # Responses

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        embed = discord.Embed(title=title, description=message, color=COLOR_ERROR)
        embed.set_footer(text="If this error persists, try using /quiz_help for available commands")
        await self.respond(interaction, embed=embed, ephemeral=True)

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "⚠️ Warning"):
        embed = discord.Embed(title=title, description=message, color=COLOR_WARN)
        await self.respond(interaction, embed=embed, ephemeral=True)


async def run_bot(token: str, config=None):
    """Run the bot with proper error handling"""
    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)
    try:
        logger.info("Starting Trivia Quiz Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
