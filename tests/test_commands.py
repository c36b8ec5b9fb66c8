"""Tests for the command interpreter."""

from linegem.agent.commands import Command, CommandInterpreter, CommandName, Content, Ignored


class TestCommandInterpreter:

    def setup_method(self):
        self.interpreter = CommandInterpreter()

    def test_text_without_prefix_is_ignored(self):
        assert self.interpreter.interpret("hello") == Ignored()

    def test_reset(self):
        assert self.interpreter.interpret("@#reset") == Command(CommandName.RESET)

    def test_reset_is_case_insensitive(self):
        assert self.interpreter.interpret("@#RESET") == Command(CommandName.RESET)
        assert self.interpreter.interpret("@#ReSeT") == Command(CommandName.RESET)

    def test_content_keeps_payload_verbatim(self):
        assert self.interpreter.interpret("@#hi there") == Content("hi there")

    def test_reset_with_extra_words_is_content(self):
        assert self.interpreter.interpret("@#reset please") == Content("reset please")

    def test_prefix_only_is_empty_content(self):
        assert self.interpreter.interpret("@#") == Content("")

    def test_prefix_must_be_at_start(self):
        assert self.interpreter.interpret(" @#reset") == Ignored()
        assert self.interpreter.interpret("say @#hi") == Ignored()

    def test_already_stripped_text_is_not_reprocessed(self):
        """Only raw text is interpreted: a stripped payload is dropped, not run twice."""
        result = self.interpreter.interpret("@#reset")
        assert isinstance(result, Command)
        assert self.interpreter.interpret("reset") == Ignored()

        content = self.interpreter.interpret("@#hi")
        assert self.interpreter.interpret(content.text) == Ignored()
        assert self.interpreter.interpret("@#" + content.text) == content

    def test_custom_prefix_and_command(self):
        interpreter = CommandInterpreter(prefix="!", reset_command="new")
        assert interpreter.interpret("!NEW") == Command(CommandName.RESET)
        assert interpreter.interpret("!reset") == Content("reset")
        assert interpreter.interpret("@#new") == Ignored()
