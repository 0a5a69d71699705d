from silent_karaoke.cli import main

main()
