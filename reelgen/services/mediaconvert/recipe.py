"""
MediaConvert job recipe
Still image + narration + burned-in captions -> vertical MP4
"""

from dataclasses import dataclass
from typing import Any, Dict

from ...config import Settings

OUTPUT_WIDTH = 1080
OUTPUT_HEIGHT = 1920
OUTPUT_NAME_MODIFIER = "_output"
OUTPUT_EXTENSION = ".mp4"

AUDIO_SELECTOR = "Audio Selector 1"
CAPTION_SELECTOR = "Captions Selector 1"


@dataclass(frozen=True)
class CaptionStyle:
    """Burn-in caption appearance"""
    font_size: int = 72
    font_color: str = "WHITE"
    outline_color: str = "BLACK"
    outline_size: int = 6
    x_position: int = 540
    y_position: int = 1600

    @classmethod
    def from_settings(cls, settings: Settings) -> "CaptionStyle":
        return cls(
            font_size=settings.caption_font_size,
            font_color=settings.caption_font_color,
            outline_color=settings.caption_outline_color,
            outline_size=settings.caption_outline_size,
            x_position=settings.caption_x_position,
            y_position=settings.caption_y_position,
        )

    def destination_settings(self) -> Dict[str, Any]:
        return {
            "DestinationType": "BURN_IN",
            "BurninDestinationSettings": {
                "BackgroundColor": "NONE",
                "BackgroundOpacity": 0,
                "FontColor": self.font_color,
                "FontOpacity": 100,
                "FontResolution": 96,
                "FontSize": self.font_size,
                "OutlineColor": self.outline_color,
                "OutlineSize": self.outline_size,
                "ShadowColor": "BLACK",
                "ShadowOpacity": 100,
                "ShadowXOffset": 4,
                "ShadowYOffset": 4,
                "TeletextSpacing": "AUTO",
                "XPosition": self.x_position,
                "YPosition": self.y_position,
            },
        }


@dataclass(frozen=True)
class VideoJobInput:
    """Storage keys of the artifacts a render job consumes"""
    image_key: str
    audio_key: str
    subtitles_key: str
    output_key: str


def output_destination(bucket: str, output_key: str) -> str:
    """Destination uri; only the basename of the output key is kept"""
    filename = output_key.rsplit("/", 1)[-1] or output_key
    return f"s3://{bucket}/output/{filename}"


def build_job_settings(
    job_input: VideoJobInput,
    bucket: str,
    role: str,
    caption_style: CaptionStyle
) -> Dict[str, Any]:
    """CreateJob arguments for one render"""

    def s3(key: str) -> str:
        return f"s3://{bucket}/{key}"

    video_input = {
        "AudioSelectors": {
            AUDIO_SELECTOR: {"DefaultSelection": "DEFAULT"}
        },
        "VideoSelector": {"ColorSpace": "FOLLOW", "Rotate": "AUTO"},
        "TimecodeSource": "ZEROBASED",
        "FileInput": s3(job_input.audio_key),
        "ImageInserter": {
            "InsertableImages": [{
                "ImageInserterInput": s3(job_input.image_key),
                "Layer": 0,
                "ImageX": 0,
                "ImageY": 0,
                "StartTime": "00:00:00:00",
                "FadeIn": 0,
                "FadeOut": 0,
                "Opacity": 100,
            }]
        },
        "CaptionSelectors": {
            CAPTION_SELECTOR: {
                "SourceSettings": {
                    "SourceType": "SRT",
                    "FileSourceSettings": {
                        "SourceFile": s3(job_input.subtitles_key),
                        "TimeDelta": 0,
                    },
                }
            }
        },
    }

    h264 = {
        "InterlaceMode": "PROGRESSIVE",
        "NumberReferenceFrames": 3,
        "Syntax": "DEFAULT",
        "Softness": 0,
        "GopClosedCadence": 1,
        "GopSize": 90,
        "Slices": 1,
        "GopBReference": "DISABLED",
        "SlowPal": "DISABLED",
        "EntropyEncoding": "CABAC",
        "Bitrate": 5000000,
        "FramerateControl": "SPECIFIED",
        "RateControlMode": "CBR",
        "CodecProfile": "MAIN",
        "CodecLevel": "AUTO",
        "SceneChangeDetect": "ENABLED",
        "QualityTuningLevel": "SINGLE_PASS",
        "FramerateNumerator": 30,
        "FramerateDenominator": 1,
    }

    aac = {
        "AudioDescriptionBroadcasterMix": "NORMAL",
        "Bitrate": 96000,
        "RateControlMode": "CBR",
        "CodecProfile": "LC",
        "CodingMode": "CODING_MODE_2_0",
        "RawFormat": "NONE",
        "SampleRate": 48000,
        "Specification": "MPEG4",
    }

    output = {
        "NameModifier": OUTPUT_NAME_MODIFIER,
        "Extension": OUTPUT_EXTENSION.lstrip("."),
        "VideoDescription": {
            "Width": OUTPUT_WIDTH,
            "Height": OUTPUT_HEIGHT,
            "ScalingBehavior": "DEFAULT",
            "AntiAlias": "ENABLED",
            "Sharpness": 50,
            "CodecSettings": {"Codec": "H_264", "H264Settings": h264},
        },
        "AudioDescriptions": [{
            "AudioTypeControl": "FOLLOW_INPUT",
            "CodecSettings": {"Codec": "AAC", "AacSettings": aac},
        }],
        "CaptionDescriptions": [{
            "CaptionSelectorName": CAPTION_SELECTOR,
            "DestinationSettings": caption_style.destination_settings(),
        }],
        "ContainerSettings": {
            "Container": "MP4",
            "Mp4Settings": {
                "CslgAtom": "INCLUDE",
                "FreeSpaceBox": "EXCLUDE",
                "MoovPlacement": "PROGRESSIVE_DOWNLOAD",
            },
        },
    }

    return {
        "Role": role,
        "Settings": {
            "TimecodeConfig": {"Source": "ZEROBASED"},
            "Inputs": [video_input],
            "OutputGroups": [{
                "Name": "File Group",
                "OutputGroupSettings": {
                    "Type": "FILE_GROUP_SETTINGS",
                    "FileGroupSettings": {
                        "Destination": output_destination(bucket, job_input.output_key)
                    },
                },
                "Outputs": [output],
            }],
        },
        "UserMetadata": {"Application": "ReelGen"},
    }
