"""
Action 列 → 高水準命令 → LLM 向けプロンプト / スタブスクリプト 変換モジュール

【使用方法】
from brick.agent.instruction_translator import InstructionTranslator

translator = InstructionTranslator()
instructions = translator.translate_to_instructions(recording.actions)
prompt = translator.generate_llm_prompt(instructions)
code = translator.generate_executable_code(instructions)

【処理内容】
1. ウィンドウタイトルが前のアクションから変わったら "Focus window: <title>" 命令を先に挿入
2. アクション1件 → 命令1件
   - マウス → click（target は要素テキスト、なければ要素名。target なしは座標）
   - キーボードの textInput → type（value はキー）
   - systemCall を持つシステムイベント → system
   - それ以外は命令なし
3. 同じコンテキストで隣接する type 命令を1つに結合（type 以外・コンテキスト変化で確定）
4. 番号付きプロンプト（Context / Target 行付き）と、async 関数1つのスタブスクリプトを生成
いずれも入力のみから決まる純粋な変換。

【依存】
brick.common.models, brick.agent.models
"""

import logging
from typing import Iterable, List, Optional

from brick.agent.models import Instruction, InstructionType
from brick.common.models import Action, KeyboardEvent, MouseEvent, SystemEvent

logger = logging.getLogger(__name__)

PROMPT_HEADER = "To complete this task, follow these steps:\n\n"


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _type_instruction(value: str, context: Optional[str]) -> Instruction:
    return Instruction(
        type=InstructionType.TYPE,
        value=value,
        description=f'Type "{value}"',
        context=context,
    )


class InstructionTranslator:
    def translate_to_instructions(self, actions: Iterable[Action]) -> List[Instruction]:
        instructions: List[Instruction] = []
        current_context: Optional[str] = None

        for action in actions:
            title = action.context.window_title
            if title and title != current_context:
                current_context = title
                instructions.append(Instruction(
                    type=InstructionType.SYSTEM,
                    description=f"Focus window: {title}",
                    context=title,
                ))

            instruction = self._translate_action(action, current_context)
            if instruction is not None:
                instructions.append(instruction)

        return self.coalesce(instructions)

    def _translate_action(self, action: Action, context: Optional[str]) -> Optional[Instruction]:
        event = action.event
        if isinstance(event, MouseEvent):
            if event.target is not None:
                target = event.target.text or event.target.element
                return Instruction(
                    type=InstructionType.CLICK,
                    target=target,
                    selector=event.target.selector or None,
                    description=f"Click {target}",
                    context=context,
                )
            x = _fmt_number(event.coordinates.x)
            y = _fmt_number(event.coordinates.y)
            return Instruction(
                type=InstructionType.CLICK,
                target=f"({x}, {y})",
                description=f"Click at ({x}, {y})",
                context=context,
            )

        if isinstance(event, KeyboardEvent):
            if event.subtype == "textInput":
                return _type_instruction(event.key, context)
            return None

        if isinstance(event, SystemEvent):
            call = event.system_call
            if call is not None:
                return Instruction(
                    type=InstructionType.SYSTEM,
                    system_call=call,
                    description=f"Execute system call: {call.type} - {call.function}",
                    context=context,
                )
        return None

    def coalesce(self, instructions: List[Instruction]) -> List[Instruction]:
        """同じコンテキストで隣接する type 命令を結合"""
        optimized: List[Instruction] = []
        run: List[Instruction] = []

        def flush():
            if run:
                optimized.append(_type_instruction("".join(i.value or "" for i in run), run[0].context))
                run.clear()

        for instruction in instructions:
            if instruction.type is InstructionType.TYPE:
                if run and run[0].context != instruction.context:
                    flush()
                run.append(instruction)
                continue
            flush()
            optimized.append(instruction)
        flush()
        return optimized

    def generate_llm_prompt(self, instructions: Iterable[Instruction]) -> str:
        prompt = PROMPT_HEADER
        for index, instruction in enumerate(instructions, start=1):
            prompt += f"{index}. {instruction.description}\n"
            if instruction.context:
                prompt += f"   Context: {instruction.context}\n"
            if instruction.selector:
                prompt += f"   Target: {instruction.selector}\n"
            prompt += "\n"
        return prompt

    def generate_executable_code(self, instructions: Iterable[Instruction]) -> str:
        lines = ["async def execute_task():"]
        for instruction in instructions:
            lines.append("    " + self._stub_call(instruction))
        if len(lines) == 1:
            lines.append("    pass")
        return "\n".join(lines) + "\n"

    def _stub_call(self, instruction: Instruction) -> str:
        kind = instruction.type
        if kind is InstructionType.CLICK:
            return f"await click({instruction.selector or instruction.target!r})"
        if kind is InstructionType.TYPE:
            return f"await type_text({instruction.value!r})"
        if kind is InstructionType.SYSTEM:
            call = instruction.system_call
            if call is not None:
                return f"await execute_system_call({call.type!r}, {call.parameters!r})"
            params = {"action": "focus", "title": instruction.context}
            return f"await execute_system_call('windowManagement', {params!r})"
        if kind is InstructionType.NAVIGATE:
            return f"await navigate({instruction.value or instruction.target!r})"
        return "await wait(1000)"
