"""
FrameChain Prompt Builders

Prompt text for every text-model call made by the pipeline.
"""

from typing import Dict, List, Optional

from framechain.core.constants import EMPTY_PLATE_PREFIX, NO_CHANGE, FrameType, SceneState
from framechain.storyboard.models import ReferenceCandidate, ScenePlate, Shot

_FRAME_TYPE_LABELS = {
    FrameType.START: "first frame (the still moment before the action starts)",
    FrameType.END: "last frame (the still moment after the action completes)",
    FrameType.SINGLE: "single frame (the only frame of a shot without action)",
}


# =============================================================================
# REFERENCE SELECTION
# =============================================================================

def describe_current_shot(shot: Shot, frame_type: FrameType) -> str:
    state = shot.scene_state.value
    if shot.environment_change and shot.environment_change != NO_CHANGE:
        state += f" (environment change: {shot.environment_change})"
    lines = [
        "[Current shot]",
        f"Description: {shot.description}",
        f"Location: {shot.location}",
        f"Shot type: {shot.shot_type or 'unspecified'}",
        "Action: " + (
            "yes (clear change between first and last frame)" if shot.has_action
            else "static (little visible change)"
        ),
        f"Dialogue: {shot.dialogue or 'none'}",
        f"Scene state: {state}",
        f"End state: {shot.end_state or 'unspecified'}",
        f"Has first frame: {'yes' if shot.first_frame_url else 'no'}",
        f"Has last frame: {'yes' if shot.last_frame_url else 'no'}",
        f"Generating: {_FRAME_TYPE_LABELS[frame_type]}",
    ]
    return "\n".join(lines)


def describe_previous_shot(previous: Optional[Shot], current: Shot) -> str:
    if previous is None:
        return "[Previous shot]\nNone (this is the first shot)"

    same_location = bool(previous.location) and previous.location == current.location
    location_note = (
        "(same location as the current shot)" if same_location
        else f"(different location from the current shot '{current.location}')"
    )
    lines = [
        "[Previous shot]",
        f"Description: {previous.description}",
        f"Location: {previous.location or 'unknown'} {location_note}",
        f"Shot type: {previous.shot_type or 'unspecified'}",
        f"End state: {previous.end_state or 'unspecified'}",
        f"Has first frame: {'yes' if previous.first_frame_url else 'no'}",
        f"Has last frame: {'yes' if previous.last_frame_url else 'no'}",
    ]
    return "\n".join(lines)


SELECTION_RULES = """[Selection rules]
1. Order is weight: earlier images influence the result more.
2. Character views keep the character's look consistent (hair, outfit, build). Do not let the model copy the pose of a character sheet.
3. Scene images keep the environment consistent. Respect the scene state:
   - "normal": use a scene plate (A face or B face, see rule 10)
   - "modified": the environment changes during this shot; do not use the original plate (it shows the state before the change). Prefer the previous shot's final frame as the environment baseline if it is offered.
   - "inherit": the environment was changed by an earlier shot; prefer the updated empty plate over the original plate.
4. Cross-location check for prev_end_frame:
   - Same location: the previous final frame carries pose, position and lighting continuity; prefer it.
   - Different location: usually do not select it, since its environment does not apply here, unless the description explicitly asks for a visual match with the previous shot.
5. The current shot's first frame (offered only for the last frame) keeps intra-shot continuity. If the scene state is "modified", the first frame shows the environment before or during the change; do not let it dominate the changed environment of the last frame.
6. Pick character views by framing:
   - side shots and over-the-shoulder shots: side view
   - back shots or a character facing away: back view
   - a character speaking while turned sideways or away: that view plus the front view
   - frontal shots and close-ups: front view
7. Shots without a character need no character views.
8. Select 2-4 images in total; more dilutes each image's influence.
9. Viewpoint conflicts: image models copy the camera angle and composition of a reference, not just its content. Infer the previous shot's camera from its description, shot type and end state, and compare with the current shot:
   - previous is a wide or medium back view, current is a frontal close-up: do not select prev_end_frame
   - previous is a frontal close-up, current is a back or side view: do not select prev_end_frame
   - a large jump in shot scale (wide to close-up, full to extreme close-up): be cautious with prev_end_frame
   - only a similar shot scale and camera direction make prev_end_frame helpful
10. A/B plates: if both scene_original (A face) and scene_reverse (B face) are offered, pick the one behind the character from the camera's position:
   - infer where the character faces from the previous end state and the current shot type
   - camera on the A side: scene_original; camera on the B side: scene_reverse
   - if the direction cannot be inferred (first shot, no facing information), use scene_original
   - never select both faces"""


def build_selector_prompt(
    frame_type: FrameType,
    current: Shot,
    previous: Optional[Shot],
    candidates: List[ReferenceCandidate]
) -> str:
    image_list = "\n".join(
        f'  - ID: "{candidate.id}" | Label: {candidate.label} | Notes: {candidate.description}'
        for candidate in candidates
    )
    return f"""You are an expert at choosing reference images for AI image generation. Select and order the most suitable images for this frame.

{describe_current_shot(current, frame_type)}

{describe_previous_shot(previous, current)}

[Available reference images]
{image_list}

{SELECTION_RULES}

[Output format]
Return a strict JSON object:
{{
  "selected": ["image_id_1", "image_id_2"],
  "reasoning": "one sentence explaining the choice"
}}

Output only the JSON."""


# =============================================================================
# SCENE STATE ANALYSIS
# =============================================================================

def build_scene_state_prompt(shots: List[Shot]) -> str:
    shot_lines = "\n\n".join(
        f"Shot {order} [location: {shot.location or 'unknown'}] "
        f"[action: {'yes' if shot.has_action else 'no'}]\n"
        f"  Description: {shot.description}\n"
        f"  End state: {shot.end_state}"
        for order, shot in enumerate(shots, start=1)
    )
    return f"""You are a professional script supervisor tracking how each shot changes its environment.

[Task]
Label the environment state of every shot below. Only the physical state of the location matters, not the actors' poses.

[Shots]
{shot_lines}

[Output]
One JSON object per shot with:
1. "order": the shot number as given above
2. "scene_state": one of
   - "normal": no irreversible change; the location matches its original state
   - "modified": an irreversible physical change happens IN THIS SHOT (something breaks, moves, spills, a door or window opens or closes, a light switches, a fire starts or goes out)
   - "inherit": the location was changed by an earlier shot and this shot keeps that changed state without a new change
3. "environment_change": English text
   - normal: "none"
   - modified: what changes in this shot, e.g. "Cup shattered on floor, coffee spilled across tiles"
   - inherit: the earlier change that must stay visible, e.g. "Broken cup remains on floor, coffee stain visible on tiles"
4. "visual_anchor": English text naming the most important visual focus of the shot

[Rules]
- Only irreversible physical changes count as "modified". Actor pose, position or expression changes do not.
- A natural lighting transition (dusk to night) or weather change (clear to rain) counts as "modified".
- State is cumulative per location: once a location is "modified", later shots at that location without a new change must be "inherit".
- Different locations are independent: a broken cup in the kitchen does not affect the bedroom.
- The first shot is "normal" unless its description says the environment is already abnormal.

Output only a strict JSON array, for example:
[
  {{"order": 1, "scene_state": "normal", "environment_change": "none", "visual_anchor": "Tidy desk with a steaming coffee cup"}},
  {{"order": 2, "scene_state": "modified", "environment_change": "Cup shattered on floor, coffee spilled across tiles", "visual_anchor": "Broken cup fragments on the floor"}},
  {{"order": 3, "scene_state": "inherit", "environment_change": "Broken cup remains on floor, coffee stain visible", "visual_anchor": "Character staring at the mess on the floor"}}
]"""


# =============================================================================
# FRAME PROMPTS
# =============================================================================

def build_frame_prompt_request(
    shot: Shot,
    frame_type: FrameType,
    character_name: Optional[str],
    previous_description: Optional[str] = None,
    visual_style: Optional[str] = None
) -> str:
    info = [
        f"Main character: {character_name}" if character_name else "No specific character",
        f"Location: {shot.location}",
    ]
    if shot.shot_type:
        info.append(f"Shot type: {shot.shot_type}")
    if shot.emotion:
        info.append(f"Emotion / mood: {shot.emotion}")
    if visual_style:
        info.append(f"Visual style: {visual_style}")
    if shot.scene_state is not SceneState.NORMAL and shot.environment_change != NO_CHANGE:
        info.append(f"Environment state that must be visible: {shot.environment_change}")
    if shot.visual_anchor:
        info.append(f"Visual focus: {shot.visual_anchor}")
    # Only the opening frame of a shot bridges from the previous shot
    if frame_type is not FrameType.END and previous_description:
        info.append(
            f"Previous shot: {previous_description}\n"
            "This frame must continue naturally from the end of the previous shot, "
            "keeping characters, location and lighting continuous."
        )

    if frame_type is FrameType.START:
        frame_hint = "This is the opening frame of the action; the character is in the state before the action starts."
    elif frame_type is FrameType.END:
        frame_hint = "This is the closing frame of the action; the character has completed it, continuing the scene and character of the first frame."
    else:
        frame_hint = "This is the only frame of a shot without significant action."

    extra = "\n".join(info)
    return f"""You are an expert at writing prompts for image generation.
Write a detailed image prompt for this storyboard shot.

Shot description: {shot.description}
{extra}
Frame: {frame_hint}

Requirements:
1. Describe content, composition, lighting and atmosphere in detail
2. Include the character's action state and expression
3. The shot type decides the composition (close-ups focus on the face, wide shots show the whole scene)
4. If a previous shot is given, make the frame follow on from it naturally
5. If a visual style is given, the prompt must carry its features
6. Output only the prompt itself, no explanation

Prompt:"""


# =============================================================================
# SCENE PLATES
# =============================================================================

def build_plate_prompt_request(scene: ScenePlate, environment_change: str) -> str:
    return f"""You are an expert at writing prompts for location images.
Write an image prompt for an EMPTY shot of this location that shows the environment change below.

Original location: {scene.name}
Description: {scene.description}
Environment: {scene.environment}
Lighting: {scene.lighting}
Mood: {scene.mood}

[Environment change - must be visible]
{environment_change}

Requirements:
1. Absolutely no people, characters or silhouettes in the image
2. The environment change must be shown (broken objects, spilled liquid and so on)
3. Preserve the original spatial layout, architecture and color palette
4. Use a neutral camera position showing the whole location, no close-ups or extreme angles
5. Start the prompt with "{EMPTY_PLATE_PREFIX}"
6. Output only the English prompt, no explanation"""


# =============================================================================
# VIDEO PROMPTS
# =============================================================================

def build_video_prompt_request(
    shot: Shot,
    previous: Optional[Shot],
    following: Optional[Shot],
    visual_style: Optional[str] = None
) -> str:
    context = []
    if previous is not None:
        context.append(f"Previous shot: {previous.description}")
    if following is not None:
        context.append(f"Next shot: {following.description}")
    details = []
    if shot.camera_run_prompt:
        details.append(f"Camera movement: {shot.camera_run_prompt}")
    if shot.shot_type:
        details.append(f"Shot type: {shot.shot_type}")
    if shot.emotion:
        details.append(f"Emotion / mood: {shot.emotion}")
    if shot.dialogue:
        details.append(f"Dialogue: {shot.dialogue}")
    if visual_style:
        details.append(f"Visual style: {visual_style}")
    motion = (
        "The clip moves from the provided first frame to the provided last frame."
        if shot.has_action else
        "The clip starts from the provided frame with subtle, natural motion."
    )
    context_text = "\n".join(context) or "No neighbouring shots."
    details_text = "\n".join(details)
    return f"""You are an expert at writing prompts for image-to-video generation.
Write one video prompt for this shot.

Shot description: {shot.description}
{details_text}
{motion}

[Context, for continuity only]
{context_text}

Requirements:
1. Describe the motion of the character and camera over the clip
2. Keep character appearance and environment consistent with the frames
3. Do not describe events from the neighbouring shots
4. Output only the prompt itself, no explanation

Prompt:"""


# =============================================================================
# STORYBOARD
# =============================================================================

STORYBOARD_FIELDS: Dict[str, str] = {
    "order": "shot number starting at 1",
    "shot_type": "framing, e.g. wide, medium, close-up, over-the-shoulder",
    "description": "what the camera sees",
    "has_action": "true when the first and last frame clearly differ",
    "start_frame": "the still image at the start of the shot",
    "end_frame": "the still image at the end of the shot (same as start_frame for static shots)",
    "dialogue": "spoken line or empty string",
    "duration": "seconds, integer",
    "characters": "array with at most one character name",
    "location": "location name, reused exactly for the same place",
    "emotion": "mood of the shot",
    "end_state": "where the character is and faces at the end of the shot",
}


def build_storyboard_prompt(script_text: str) -> str:
    fields = "\n".join(f'- "{name}": {meaning}' for name, meaning in STORYBOARD_FIELDS.items())
    return f"""You are a storyboard artist. Break the script below into shots.

[Script]
{script_text}

[Each shot is a JSON object with]
{fields}

Rules:
- One camera setup per shot, in story order
- At most one character per shot; split shots with several characters
- Use the same location name every time the story returns to a place

Output only a strict JSON array of shot objects."""


# =============================================================================
# CAMERA RUN
# =============================================================================

CAMERA_RUN_GUIDE = """Camera language:
- Dolly in/out moves the camera body and changes perspective; zoom only changes focal length
- Pan and tilt rotate in place; track follows the subject sideways; arc circles around it
- Crane or jib moves vertically to reveal or conclude a space
- Handheld adds tension and presence; steadicam glides with a walking subject
- Static framing suits dialogue and quiet beats; slow moves suit emotion, fast moves suit action

Continuity between shots:
- Start from where the previous shot's camera and character ended
- Avoid reversing the previous shot's movement direction without a reason
- Settle on a composition the next shot can cut from"""


def describe_neighbour(label: str, shot: Optional[Shot]) -> str:
    if shot is None:
        return f"[{label}]\nNone"
    lines = [
        f"[{label}]",
        f"Description: {shot.description}",
        f"Shot type: {shot.shot_type or 'unspecified'}",
        f"Action: {'yes' if shot.has_action else 'static'}",
    ]
    if shot.attributes.get("camera_movement"):
        lines.append(f"Camera movement: {shot.attributes['camera_movement']}")
    if shot.end_state:
        lines.append(f"End state: {shot.end_state}")
    if shot.emotion:
        lines.append(f"Emotion: {shot.emotion}")
    return "\n".join(lines)


def build_camera_run_prompt(
    shot: Shot,
    previous: Optional[Shot],
    following: Optional[Shot],
    duration: int,
    visual_style: Optional[str] = None,
    appearance: Optional[str] = None
) -> str:
    """Prompt asking for one paragraph describing the camera run of a shot."""
    current = [
        "[Current shot]",
        f"Description: {shot.description}",
        f"Shot type: {shot.shot_type or 'unspecified'}",
        "Action: " + ("yes, the first and last frame differ" if shot.has_action else "static"),
        f"Duration: {duration} seconds",
    ]
    if shot.attributes.get("camera_movement"):
        current.append(f"Planned camera movement: {shot.attributes['camera_movement']}")
    if shot.attributes.get("start_frame"):
        current.append(f"First frame: {shot.attributes['start_frame']}")
    if shot.has_action and shot.attributes.get("end_frame"):
        current.append(f"Last frame: {shot.attributes['end_frame']}")
    if shot.emotion:
        current.append(f"Emotion: {shot.emotion}")
    if shot.dialogue:
        current.append(f"Dialogue: {shot.dialogue}")
    if shot.end_state:
        current.append(f"End state: {shot.end_state}")
    if appearance:
        current.append(f"Character appearance: {appearance}")
    if visual_style:
        current.append(f"Visual style: {visual_style}")
    current_text = "\n".join(current)
    frames = "first and last frame" if shot.has_action else "first frame only"

    return f"""You are a director of photography planning the camera run of one shot.

{CAMERA_RUN_GUIDE}

{describe_neighbour("Previous shot", previous)}

{current_text}
Frames available to the video model: {frames}

{describe_neighbour("Next shot", following)}

Requirements:
1. Write one paragraph in English
2. Name the movement type, its direction and its speed
3. Describe the composition at the start and at the end of the shot
4. Describe how the actor's movement and the camera work together
5. If there is dialogue, keep the speaker's face and lips readable
6. Continue from the previous shot's end state and finish on this shot's end state
7. Match the mood and fit the movement into {duration} seconds
8. Output only the paragraph, no explanation"""
