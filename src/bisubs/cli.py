from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .env import load_dotenv_if_present
from .config import BisubsConfig
from .errors import BisubsError
from .generate import SubtitleGenerator
from .generate.factory import get_media_provider
from .session import SubtitleSession
from .state import Language, ProcessingStatus
from .subtitles import write_json


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bisubs",
        description="bisubs: 使用 Gemini 为视频/音频生成中英双语字幕。",
    )
    parser.add_argument(
        "input",
        type=str,
        help="输入视频或音频文件路径。",
    )
    parser.add_argument(
        "--priority",
        type=str,
        choices=["english", "chinese"],
        default="english",
        help="目标语言偏好：english / chinese（只影响提示词中的优先级）。",
    )
    parser.add_argument(
        "--output-srt",
        type=str,
        default=None,
        help="输出双语 SRT 路径（默认: 与输入同名 .srt）。",
    )
    parser.add_argument(
        "--output-json",
        type=str,
        default=None,
        help="如果指定，额外输出一份 JSON 字幕列表（startTime/endTime/originalText/translatedText）。",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Gemini 模型名称（默认 gemini-2.5-flash，可通过环境变量 BISUBS_MODEL 配置）。",
    )
    parser.add_argument(
        "--mime-type",
        type=str,
        default=None,
        help="声明的媒体类型（默认根据扩展名推断，无法推断时使用 video/mp4）。",
    )
    return parser


def build_session(config: BisubsConfig) -> SubtitleSession:
    provider = get_media_provider(config)
    return SubtitleSession(SubtitleGenerator(provider, config), config)


def main(argv: list[str] | None = None) -> int:
    # 确保在解析参数和使用配置之前加载 .env 中的环境变量
    load_dotenv_if_present()
    if argv is None:
        argv = sys.argv[1:]

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    input_path = Path(args.input).expanduser().resolve()
    if args.output_srt:
        output_srt = Path(args.output_srt).expanduser().resolve()
    else:
        output_srt = input_path.with_suffix(".srt")

    try:
        config = BisubsConfig.from_env(model=args.model)
        session = build_session(config)
        session.select_file(input_path, mime_type=args.mime_type)
        session.set_target_language(Language.parse(args.priority))

        result = session.generate()
        if result.status is not ProcessingStatus.COMPLETED:
            print(f"处理失败: {result.message}")
            return 1

        session.export_srt(output_srt)
        if args.output_json:
            write_json(session.state.subtitles, args.output_json)

        print("字幕生成完成")
        print(f"   输入: {input_path}")
        print(f"   字幕: {output_srt}")
        if args.output_json:
            print(f"   JSON: {Path(args.output_json).expanduser().resolve()}")
        print(f"   条目数: {len(session.state.subtitles)}")
        return 0
    except KeyboardInterrupt:
        print("\n用户中断")
        return 1
    except (BisubsError, OSError, ValueError) as exc:
        print(f"处理失败: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
