"""
EncoderConfig: ffmpeg argument construction for a single conversion.

The per-codec flag table lives on an EncoderConfig instance that is handed
to the worker pool, so callers can override or extend it without touching
module state.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import SizedJob


def _default_codec_args() -> Dict[str, List[str]]:
    return {
        "libx265": [
            # h.265 thumbnail previews on Apple devices
            "-tag:v", "hvc1",
            # 28 is visibly worse; 24 keeps most of the size savings
            "-crf", "24",
        ],
        "hevc_videotoolbox": [
            "-tag:v", "hvc1",
            # above 65 the size grows quickly, below it quality drops
            "-q:v", "65",
        ],
    }


DEFAULT_CODECS_BY_TYPE = {
    "mp4": "libx265",
}

# Applied to every conversion, whatever the codec.
COMPATIBILITY_ARGS = [
    # start playback before the whole file is downloaded
    "-movflags", "faststart",
    # keeps .gif palettes from coming out with broken colors
    "-pix_fmt", "yuv420p",
    # yuv420p needs even dimensions
    "-vf", "crop=trunc(iw/2)*2:trunc(ih/2)*2",
]


@dataclass
class EncoderConfig:
    """Binary locations and per-codec flags for the converter."""
    ffmpeg: str = "ffmpeg"
    codec: Optional[str] = None
    codec_args: Dict[str, List[str]] = field(default_factory=_default_codec_args)
    loglevel: str = "error"

    @classmethod
    def for_output_type(cls, output_type: str, codec: Optional[str] = None,
                        **kwargs) -> "EncoderConfig":
        """Pick the explicit codec, else the default for *output_type*, else ffmpeg's own."""
        if not codec:
            codec = DEFAULT_CODECS_BY_TYPE.get(output_type.lower().lstrip("."))
        return cls(codec=codec, **kwargs)

    def args_for_codec(self, codec: Optional[str] = None) -> List[str]:
        codec = codec if codec is not None else self.codec
        if not codec:
            return []
        return ["-c:v", codec, *self.codec_args.get(codec, [])]

    def build_encode_cmd(self, job: SizedJob, progress_url: Optional[str]) -> List[str]:
        """
        Build the full ffmpeg command for one job.

        The command structure is:
            ffmpeg -hide_banner -nostats -loglevel <level>
              -progress <progress_url>   key=value progress to the job's endpoint
              -y                         overwrite the output without prompting
              -i <input>
              [-c:v <codec> <codec flags>]
              <compatibility flags>
              <output>
        """
        progress = ["-progress", progress_url] if progress_url else []
        return [
            self.ffmpeg,
            "-hide_banner", "-nostats",
            "-loglevel", self.loglevel,
            *progress,
            "-y",
            "-i", str(job.input_path),
            *self.args_for_codec(),
            *COMPATIBILITY_ARGS,
            str(job.output_path),
        ]
