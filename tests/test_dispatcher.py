#!/usr/bin/env python3
"""
Tests for the shell command dispatcher. Commands run for real inside tmp_path.
"""

from unittest.mock import patch

import pytest

from scribe.tutoring.dispatcher import (
    CommandDispatcher,
    CommandResult,
    extract_file_name,
    heredoc_delimiter,
    is_shell_command,
)
from scribe.tutoring.progress import ProgressStore
from scribe.tutoring.steps import is_command_line


@pytest.fixture
def store(tmp_path):
    store = ProgressStore(str(tmp_path))
    store.create('seg-1', 0)
    return store


@pytest.fixture
def dispatcher(tmp_path, store):
    return CommandDispatcher(str(tmp_path), store, timeout=10)


class TestHelpers:
    """Tests for command classification helpers"""

    def test_is_shell_command(self):
        assert is_shell_command('mkdir src')
        assert is_shell_command('grep -r foo .')
        assert not is_shell_command('what is mkdir')
        assert not is_shell_command('')

    def test_same_vocabulary_as_compiler(self):
        """Test that every line compiled as a command step is dispatched as one"""
        for line in ('find . -name x', 'grep foo a.txt', 'pytest -q', 'gitk --all', 'const x = 1;'):
            assert is_shell_command(line) == is_command_line(line)

    def test_heredoc_delimiter(self):
        assert heredoc_delimiter("cat > a.txt << 'EOF'") == 'EOF'
        assert heredoc_delimiter('cat > a.txt <<END') == 'END'
        assert heredoc_delimiter('cat a.txt') is None

    def test_extract_file_name(self):
        assert extract_file_name("cat > src/a.ts << 'EOF'") == 'src/a.ts'
        assert extract_file_name('echo hi >> log.txt') == 'log.txt'
        assert extract_file_name('ls') == 'file'

    def test_message_for_agent(self):
        ok = CommandResult('ls', True, '')
        assert ok.message_for_agent == 'I ran: ls\nOutput: (success)'
        failed = CommandResult('ls nope', False, 'No such file')
        assert failed.message_for_agent == 'I ran: ls nope\nError: No such file'


class TestCommandDispatcher:
    """Tests for the dispatcher state machine and execution"""

    def test_prose_passes_through(self, dispatcher):
        outcome = dispatcher.handle('why do we need a src folder?')
        assert outcome.kind == 'prose'
        assert outcome.result is None

    def test_mkdir_runs_in_project(self, tmp_path, dispatcher, store):
        outcome = dispatcher.handle('mkdir -p src/utils')

        assert outcome.kind == 'executed'
        assert outcome.result.success
        assert (tmp_path / 'src' / 'utils').is_dir()
        assert store.current.last_user_action == 'mkdir -p src/utils'
        assert store.current.completed_steps == ['Created directory: mkdir -p src/utils']

    def test_touch_marks_code_written(self, tmp_path, dispatcher, store):
        dispatcher.handle('touch index.ts')
        assert (tmp_path / 'index.ts').exists()
        assert store.current.code_written is True
        assert store.current.completed_steps == ['Created file: index.ts']

    def test_echo_redirect_marks_code_written(self, tmp_path, dispatcher, store):
        dispatcher.handle('echo hello > greeting.txt')
        assert (tmp_path / 'greeting.txt').read_text() == 'hello\n'
        assert store.current.code_written is True

    def test_failure_uses_stderr(self, dispatcher, store):
        outcome = dispatcher.handle('ls does-not-exist')

        assert outcome.kind == 'executed'
        assert not outcome.result.success
        assert outcome.result.returncode != 0
        assert 'does-not-exist' in outcome.result.output
        assert store.current.last_user_action == 'Failed: ls does-not-exist'

    def test_failure_without_output(self, dispatcher):
        result = dispatcher.execute('false')
        assert not result.success
        assert result.output == 'Command exited with status 1'

    def test_timeout(self, tmp_path):
        dispatcher = CommandDispatcher(str(tmp_path), timeout=1)
        result = dispatcher.execute('sleep 5')
        assert not result.success
        assert 'timed out' in result.output

    def test_heredoc_line_by_line(self, tmp_path, dispatcher, store):
        assert dispatcher.handle("cat > hello.py << 'EOF'").kind == 'heredoc_started'
        assert dispatcher.collecting
        assert dispatcher.handle("print('hi')").kind == 'heredoc_line'
        assert dispatcher.handle('    return 1').kind == 'heredoc_line'

        outcome = dispatcher.handle('EOF')
        assert outcome.kind == 'executed'
        assert outcome.heredoc
        assert outcome.result.success
        assert not dispatcher.collecting
        assert (tmp_path / 'hello.py').read_text() == "print('hi')\n    return 1\n"
        assert store.current.code_written is True
        assert store.current.completed_steps == ['Created file: hello.py']

    def test_heredoc_body_lines_are_not_commands(self, tmp_path, dispatcher):
        dispatcher.handle("cat > notes.txt << 'EOF'")
        assert dispatcher.handle('mkdir should-not-run').kind == 'heredoc_line'
        dispatcher.handle('EOF')
        assert not (tmp_path / 'should-not-run').exists()
        assert (tmp_path / 'notes.txt').read_text() == 'mkdir should-not-run\n'

    def test_submit_block(self, tmp_path, dispatcher):
        outcome = dispatcher.submit_block("cat > a.txt << 'EOF'\none\ntwo\nEOF")
        assert outcome.kind == 'executed'
        assert outcome.heredoc
        assert (tmp_path / 'a.txt').read_text() == 'one\ntwo\n'

    def test_submit_block_unterminated_keeps_collecting(self, dispatcher):
        outcome = dispatcher.submit_block("cat > a.txt << 'EOF'\none")
        assert outcome.kind == 'heredoc_line'
        assert dispatcher.collecting

    def test_submit_block_of_code_is_prose(self, dispatcher):
        outcome = dispatcher.submit_block('def f():\n    return 1')
        assert outcome.kind == 'prose'
        assert not dispatcher.collecting

    def test_reset_heredoc(self, tmp_path, dispatcher):
        dispatcher.handle("cat > a.txt << 'EOF'")
        dispatcher.reset_heredoc()
        assert not dispatcher.collecting
        assert dispatcher.handle('EOF').kind == 'prose'
        assert not (tmp_path / 'a.txt').exists()

    def test_git_commit_marks_committed(self, dispatcher, store):
        with patch.object(dispatcher, 'execute', return_value=CommandResult('git commit -m "x"', True, '')):
            dispatcher.handle('git commit -m "x"')
        assert store.current.committed is True
        assert store.current.completed_steps == ['Committed code to git']

    def test_no_progress_record(self, tmp_path):
        dispatcher = CommandDispatcher(str(tmp_path), ProgressStore(str(tmp_path)))
        outcome = dispatcher.handle('mkdir src')
        assert outcome.result.success
