"""Gradio UI for Lifestyle Studio."""

import logging
from collections.abc import Callable

import gradio as gr

from lifestyle_studio.core.config import config
from lifestyle_studio.core.image_service import GeminiImageService, ImageService
from lifestyle_studio.core.options import (
    BATCH_SIZES,
    FamilyComposition,
    OutputAspectRatio,
    SceneType,
)

from .handlers import (
    IDLE_STATUS,
    download_current,
    download_primary,
    promote_current,
    promote_history,
    run_generation,
    set_template_image,
    sync_product_photos,
    update_settings,
)
from .state import create_session

logger = logging.getLogger(__name__)

TITLE = "赋能跨境电商·A+页面视觉工坊"

ServiceProvider = Callable[[], ImageService]


def create_ui(service_provider: ServiceProvider) -> gr.Blocks:
    """Create the studio page.

    Args:
        service_provider: Returns the image service to use for each run

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title=TITLE)

    with app:
        # Session state - one StudioSession per browser tab, built on page load
        session_state = gr.State(create_session)

        gr.Markdown(f"# {TITLE}\n### Amazon 千帆AI作图")

        with gr.Row():
            with gr.Column(scale=1):
                gr.Markdown("### 1. 上传产品照片")
                product_files = gr.File(
                    label="添加产品白底图",
                    file_count="multiple",
                    file_types=["image"],
                    type="filepath",
                )

                gr.Markdown(
                    "### 2. (可选) 上传A+页面模版\n"
                    "*AI将学习模版的构图、色调与留白，使生成图完美适配您的详情页布局。*"
                )
                template_image = gr.Image(
                    label="上传排版模版",
                    type="filepath",
                    sources=["upload", "clipboard"],
                    height=200,
                )
                template_status = gr.Markdown("*未使用 A+ 模版*")

                gr.Markdown("### 3. 配置生成要求")
                aspect_ratio = gr.Radio(
                    label="输出比例",
                    choices=[ratio.value for ratio in OutputAspectRatio],
                    value=OutputAspectRatio.SQUARE.value,
                )
                with gr.Row():
                    scene = gr.Dropdown(
                        label="环境场景",
                        choices=[item.value for item in SceneType],
                        value=SceneType.LAWN.value,
                    )
                    family = gr.Dropdown(
                        label="人物元素",
                        choices=[item.value for item in FamilyComposition],
                        value=FamilyComposition.CAUCASIAN_FOUR.value,
                    )
                batch_size = gr.Radio(
                    label="批量生成数量",
                    choices=list(BATCH_SIZES),
                    value=config.default_batch_size,
                )
                note = gr.Textbox(
                    label="微调备注",
                    placeholder="例如：光线偏暖，帐篷旁边放一双登山鞋...",
                    lines=3,
                )

                generate_btn = gr.Button("开始生成", variant="primary", size="lg")

            with gr.Column(scale=2):
                gr.Markdown("### 画布预览")
                status = gr.Markdown(IDLE_STATUS)
                current_gallery = gr.Gallery(
                    label="当前结果",
                    height=480,
                    columns=3,
                    object_fit="contain",
                    allow_preview=True,
                )
                with gr.Row():
                    refine_btn = gr.Button("基于选定图精修细节", variant="secondary")
                    download_btn = gr.Button("下载主图", variant="secondary")
                download_file = gr.File(label="下载", interactive=False)

                gr.Markdown("### 历史资产库")
                history_gallery = gr.Gallery(
                    label="历史",
                    height=240,
                    columns=6,
                    object_fit="cover",
                    allow_preview=False,
                )

        # Event handlers

        async def on_generate(state, progress=gr.Progress()):
            return await run_generation(False, service_provider(), state, progress)

        async def on_refine(state, progress=gr.Progress()):
            return await run_generation(True, service_provider(), state, progress)

        def on_select_current(evt: gr.SelectData, state):
            # Export first: promotion reorders the current results.
            path, message = download_current(evt, state)
            current, history, session = promote_current(evt, state)
            return current, history, path, message, session

        results_outputs = [current_gallery, history_gallery, status, session_state]
        settings_inputs = [scene, family, aspect_ratio, note, batch_size, session_state]

        product_files.change(
            fn=sync_product_photos,
            inputs=[product_files, session_state],
            outputs=[status, session_state],
        )
        template_image.change(
            fn=set_template_image,
            inputs=[template_image, session_state],
            outputs=[template_status, session_state],
        )

        for control in (scene, family, aspect_ratio, batch_size):
            control.change(fn=update_settings, inputs=settings_inputs, outputs=results_outputs)
        note.blur(fn=update_settings, inputs=settings_inputs, outputs=results_outputs)

        # Settings are applied before every run so a note still being typed
        # is included.
        generate_btn.click(
            fn=update_settings, inputs=settings_inputs, outputs=results_outputs
        ).then(fn=on_generate, inputs=[session_state], outputs=results_outputs)
        refine_btn.click(
            fn=update_settings, inputs=settings_inputs, outputs=results_outputs
        ).then(fn=on_refine, inputs=[session_state], outputs=results_outputs)

        current_gallery.select(
            fn=on_select_current,
            inputs=[session_state],
            outputs=[current_gallery, history_gallery, download_file, status, session_state],
        )
        history_gallery.select(
            fn=promote_history,
            inputs=[session_state],
            outputs=[current_gallery, history_gallery, session_state],
        )
        download_btn.click(
            fn=download_primary,
            inputs=[session_state],
            outputs=[download_file, status, session_state],
        )

    return app


def main():
    """Launch the studio page on its own, without the JSON API."""
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Lifestyle Studio UI...")
    logger.info(f"Configuration: {config.model_dump(exclude={'api_key'})}")

    service = GeminiImageService.from_config(config)
    app = create_ui(lambda: service)

    logger.info(f"Launching Gradio UI on {config.server_host}:{config.server_port}")

    app.launch(
        server_name=config.server_host,
        server_port=config.server_port,
        show_error=True,
        inbrowser=False,
    )


if __name__ == "__main__":
    main()
