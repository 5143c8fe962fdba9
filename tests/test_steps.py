#!/usr/bin/env python3
"""
Tests for the step plan compiler.
"""

from scribe.tutoring.state import StepKind, StepLine
from scribe.tutoring.steps import (
    compile_transcript,
    describe_command,
    is_command_line,
    match_heredoc_opener,
)


class TestCommandRecognition:
    """Tests for command and heredoc line detection"""

    def test_recognized_commands(self):
        assert is_command_line('mkdir -p src')
        assert is_command_line('git init')
        assert is_command_line('  npm install express')
        assert is_command_line('pwd')

    def test_prefix_is_not_enough(self):
        """Test that 'gitk' or 'mkdirs' are not taken for git or mkdir"""
        assert not is_command_line('gitk --all')
        assert not is_command_line('mkdirs foo')
        assert not is_command_line('const x = 1;')

    def test_search_commands_compile_to_steps(self):
        plan = compile_transcript('find . -name "*.py"\ngrep -rn TODO src')
        assert [s.kind for s in plan.steps] == [StepKind.COMMAND, StepKind.COMMAND]
        assert plan.steps[0].text == 'find . -name "*.py"'

    def test_heredoc_opener_variants(self):
        assert match_heredoc_opener("cat > f.txt << 'EOF'") == ('f.txt', 'EOF')
        assert match_heredoc_opener('cat > src/a.ts << "END"') == ('src/a.ts', 'END')
        assert match_heredoc_opener('cat >out.js <<EOF') == ('out.js', 'EOF')
        assert match_heredoc_opener('cat f.txt') is None

    def test_describe_command(self):
        assert describe_command('mkdir -p src') == 'creates directory src'
        assert describe_command('touch src/index.ts') == 'creates file src/index.ts'
        assert describe_command('git commit -m "init"') == 'commits changes'
        assert describe_command('frobnicate') == 'run this command'


class TestCompileTranscript:
    """Tests for compile_transcript"""

    def test_two_commands(self):
        """Test that mkdir and touch become two command steps"""
        plan = compile_transcript('mkdir -p src\ntouch src/index.ts')

        assert plan.total == 2
        assert [s.kind for s in plan.steps] == [StepKind.COMMAND, StepKind.COMMAND]
        assert plan.steps[0].text == 'mkdir -p src'
        assert plan.steps[1].text == 'touch src/index.ts'
        assert plan.steps[1].line_number == 2

    def test_heredoc_round_trip(self):
        plan = compile_transcript("cat > f << 'EOF'\na\nb\nEOF")

        assert plan.total == 1
        step = plan.steps[0]
        assert step.kind == StepKind.HEREDOC
        assert [line.code for line in step.lines] == ['a', 'b']
        assert step.lines[0] == StepLine(code='a', comment='creates f')
        assert step.text == "cat > f << 'EOF'\na\nb\nEOF"
        assert step.target_file == 'f'
        assert step.delimiter == 'EOF'
        assert step.terminated
        assert not step.incomplete

    def test_heredoc_keeps_indentation(self):
        plan = compile_transcript("cat > a.py << 'EOF'\ndef f():\n    return 1\nEOF")
        assert plan.steps[0].lines[1].code == '    return 1'

    def test_unterminated_heredoc(self):
        """Test that a heredoc cut off by end of input is flagged, not dropped"""
        plan = compile_transcript("mkdir src\ncat > f << 'EOF'\na\nb")

        assert plan.total == 2
        step = plan.steps[1]
        assert step.kind == StepKind.HEREDOC
        assert step.incomplete
        assert step.text == "cat > f << 'EOF'\na\nb"
        assert plan.has_incomplete_step

    def test_code_block_groups_until_blank(self):
        transcript = 'const a = 1;\nconst b = 2;\n\nconsole.log(a + b);'
        plan = compile_transcript(transcript)

        assert plan.total == 2
        block, single = plan.steps
        assert block.kind == StepKind.CODE_BLOCK
        assert block.is_multiline
        assert block.text == 'const a = 1;\nconst b = 2;'
        assert block.comment == 'Type each line of code'
        assert single.kind == StepKind.CODE_BLOCK
        assert not single.is_multiline
        assert single.comment == 'Type the code'

    def test_code_block_stops_at_command(self):
        plan = compile_transcript('x = 1\ngit add .')
        assert [s.kind for s in plan.steps] == [StepKind.CODE_BLOCK, StepKind.COMMAND]

    def test_mixed_transcript(self):
        transcript = (
            'mkdir app\n'
            "cat > app/main.py << 'EOF'\n"
            "print('hi')\n"
            'EOF\n'
            '\n'
            'git add .\n'
            'git commit -m "first"\n'
        )
        plan = compile_transcript(transcript)

        assert [s.kind for s in plan.steps] == [
            StepKind.COMMAND, StepKind.HEREDOC, StepKind.COMMAND, StepKind.COMMAND,
        ]
        assert plan.steps[1].line_number == 2

    def test_empty_transcript(self):
        assert compile_transcript('').total == 0
        assert compile_transcript('\n\n   \n').total == 0

    def test_deterministic(self):
        transcript = "mkdir src\ncat > f << 'EOF'\na\nEOF\nx = 1"
        assert compile_transcript(transcript) == compile_transcript(transcript)

    def test_plan_get_out_of_range(self):
        plan = compile_transcript('mkdir src')
        assert plan.get(0) is plan.steps[0]
        assert plan.get(1) is None
        assert plan.get(-1) is None
